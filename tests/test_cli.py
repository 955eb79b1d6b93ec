# tests/test_cli.py
from __future__ import annotations

from typer.testing import CliRunner

from boostbridge import __version__
from boostbridge.cli import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_params_prints_objective(tmp_path):
    path = tmp_path / "cfg.yml"
    path.write_text("booster:\n  response_column: y\n  eta: 0.3\n", encoding="utf-8")

    result = runner.invoke(app, ["params", str(path), "--nclasses", "3"])

    assert result.exit_code == 0
    assert "multi:softprob" in result.stdout
    assert "num_class" in result.stdout


def test_train_writes_predictions(tmp_path, regression_frame):
    cfg = tmp_path / "cfg.yml"
    cfg.write_text(
        "booster:\n  response_column: label\n  ntrees: 3\n  min_rows: 1\n",
        encoding="utf-8",
    )
    data = tmp_path / "train.parquet"
    regression_frame.to_parquet(data, index=False)
    out = tmp_path / "out" / "preds.parquet"

    result = runner.invoke(app, ["train", str(cfg), str(data), "--output", str(out)])

    assert result.exit_code == 0, result.stdout
    assert out.exists()
