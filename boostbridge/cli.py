#!filepath: boostbridge/cli.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd
import typer
from rich import print

from boostbridge import __version__, init_logging
from boostbridge.config.app_config import AppConfig
from boostbridge.training.engines.param_translate_engine import ParamTranslateEngine

app = typer.Typer(help="BoostBridge tree-ensemble CLI")


def _read_frame(path: Path) -> pd.DataFrame:
    if path.suffix == ".parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path)


@app.command()
def version():
    print(f"v{__version__}")


@app.command()
def params(config: Path, nclasses: int = typer.Option(1, help="1 = regression")):
    """
    Print the backend parameter map for a config
    """
    cfg = AppConfig.load(str(config))
    init_logging(cfg.log)

    translated = ParamTranslateEngine().translate(
        cfg.booster,
        nclasses=nclasses,
        gpu_available=cfg.runtime.gpu_available,
    )
    for key, value in translated.params.items():
        print(f"[cyan]{key}[/cyan] = {value}  [dim]({translated.sources.get(key, 'derived')})[/dim]")


@app.command()
def train(
        config: Path,
        train_path: Path,
        valid: Optional[Path] = typer.Option(None, help="validation frame"),
        output: Optional[Path] = typer.Option(None, help="write training predictions here"),
):
    """
    Train a booster and report metrics
    """
    from boostbridge.workflows.booster_training import build_booster_training

    cfg = AppConfig.load(str(config))
    init_logging(cfg.log)

    train_frame = _read_frame(train_path)
    valid_frame = _read_frame(valid) if valid is not None else None

    pipeline = build_booster_training(cfg)
    print(f"[green]Training on {train_path} ({len(train_frame)} rows)[/green]")

    ctx = pipeline.run(train_frame, valid_frame)
    model = ctx.model
    try:
        out = model.output
        print(f"[blue]ntrees = {out.ntrees}[/blue]")
        if out.training_metrics is not None:
            print(out.training_metrics.to_dict())
        if out.validation_metrics is not None:
            print(out.validation_metrics.to_dict())
        if out.varimp is not None:
            print(out.varimp.sorted().to_frame().head(20))
        if output is not None:
            model.score(train_frame, destination=str(output))
            print(f"[yellow]predictions -> {output}[/yellow]")
    finally:
        model.remove()


if __name__ == "__main__":
    app()

# python -m boostbridge.cli train boostbridge/config/base.yml data/train.parquet
