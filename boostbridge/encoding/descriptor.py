# boostbridge/encoding/descriptor.py
from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from functools import cached_property
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np
import pandas as pd
import scipy.sparse as sp

from boostbridge import logs
from boostbridge.config.booster_config import DMatrixType
from boostbridge.utils.errors import ContractViolation, UnseenCategoryWarning

# level code for categorical values never seen during training
UNSEEN_LEVEL = -1

# auto layout switches to sparse below this share of non-zero cells
SPARSE_DENSITY_CUTOFF = 0.5


def is_categorical(series: pd.Series) -> bool:
    dtype = series.dtype
    return (
        isinstance(dtype, pd.CategoricalDtype)
        or pd.api.types.is_object_dtype(dtype)
        or pd.api.types.is_bool_dtype(dtype)
        or pd.api.types.is_string_dtype(dtype)
    )


def domain_of(series: pd.Series) -> List[str]:
    if isinstance(series.dtype, pd.CategoricalDtype):
        return [str(c) for c in series.dtype.categories]
    return sorted({str(v) for v in series.dropna().unique()})


@dataclass(frozen=True)
class CategoricalEncodingDescriptor:
    """
    CategoricalEncodingDescriptor（FROZEN once stored）

    Layout of the flat feature vector handed to the backend:

        [ cat_0 one-hot | cat_1 one-hot | ... | num_0 | num_1 | ... ]

    - categorical columns first (frame order), numeric columns after
    - cat_offsets[i] is where column i's block starts, cat_offsets[-1] == first numeric slot
    - when not all factor levels are kept the first level of each domain is dropped
    """

    names: tuple[str, ...]
    domains: tuple[tuple[str, ...], ...]
    cat_offsets: tuple[int, ...]
    nums: int
    cats: int
    use_all_factor_levels: bool = True
    num_means: tuple[float, ...] = ()
    impute_means: bool = False
    sparse: bool = False

    # ======================================================================
    # Construction
    # ======================================================================
    @classmethod
    def from_frame(
            cls,
            frame: pd.DataFrame,
            *,
            response_column: Optional[str] = None,
            ignored_columns: Iterable[str] = (),
            weights_column: Optional[str] = None,
            use_all_factor_levels: bool = True,
            dmatrix_type: DMatrixType = DMatrixType.AUTO,
            impute_means: bool = False,
    ) -> "CategoricalEncodingDescriptor":
        skip = set(ignored_columns)
        skip.update(c for c in (response_column, weights_column) if c is not None)

        features = [c for c in frame.columns if c not in skip]
        cat_names = [c for c in features if is_categorical(frame[c])]
        num_names = [c for c in features if c not in set(cat_names)]

        domains = tuple(tuple(domain_of(frame[c])) for c in cat_names)

        offsets = [0]
        for dom in domains:
            width = len(dom) if use_all_factor_levels else max(len(dom) - 1, 0)
            offsets.append(offsets[-1] + width)

        means = tuple(
            float(pd.to_numeric(frame[c], errors="coerce").mean()) for c in num_names
        )

        descriptor = cls(
            names=tuple(str(c) for c in cat_names + num_names),
            domains=domains,
            cat_offsets=tuple(offsets),
            nums=len(num_names),
            cats=len(cat_names),
            use_all_factor_levels=use_all_factor_levels,
            num_means=means,
            impute_means=impute_means,
            sparse=False,
        )

        if dmatrix_type == DMatrixType.SPARSE:
            sparse = True
        elif dmatrix_type == DMatrixType.DENSE:
            sparse = False
        else:
            sparse = descriptor._estimate_density(frame) < SPARSE_DENSITY_CUTOFF

        logs.info(
            f"[EncodingDescriptor] cats={descriptor.cats} nums={descriptor.nums} "
            f"width={descriptor.full_width} sparse={sparse}"
        )

        return replace(descriptor, sparse=sparse)

    # ======================================================================
    # Layout
    # ======================================================================
    @property
    def numeric_count(self) -> int:
        return self.nums

    @property
    def categorical_count(self) -> int:
        return self.cats

    @property
    def full_width(self) -> int:
        return self.cat_offsets[-1] + self.nums

    def is_all_levels_kept(self) -> bool:
        return self.use_all_factor_levels

    def offset_for(self, column_index: int) -> int:
        """
        Start of the column in the flat feature vector.
        Categorical columns map to their one-hot block, numeric columns to a single slot.
        """
        if column_index < 0 or column_index >= len(self.names):
            raise IndexError(f"column index {column_index} out of range [0, {len(self.names)})")
        if column_index < self.cats:
            return self.cat_offsets[column_index]
        return self.cat_offsets[-1] + (column_index - self.cats)

    def feature_names(self) -> List[str]:
        out: List[str] = []
        for i, dom in enumerate(self.domains):
            levels = dom if self.use_all_factor_levels else dom[1:]
            out.extend(f"{self.names[i]}.{lvl}" for lvl in levels)
        out.extend(self.names[self.cats:])
        return out

    @cached_property
    def _level_index(self) -> tuple[Dict[str, int], ...]:
        return tuple({lvl: i for i, lvl in enumerate(dom)} for dom in self.domains)

    def level_code(self, column_index: int, level: Any) -> int:
        """
        Domain index of `level`, or UNSEEN_LEVEL when training never saw it.
        """
        if column_index < 0 or column_index >= self.cats:
            raise IndexError(f"column {column_index} is not categorical")
        if level is None or _is_nan(level):
            return UNSEEN_LEVEL
        return self._level_index[column_index].get(str(level), UNSEEN_LEVEL)

    def _slot(self, column_index: int, code: int) -> Optional[int]:
        # dropped reference level and unseen levels have no indicator slot
        if code == UNSEEN_LEVEL:
            return None
        if not self.use_all_factor_levels:
            if code == 0:
                return None
            code -= 1
        return self.cat_offsets[column_index] + code

    # ======================================================================
    # Encoding
    # ======================================================================
    def encode_row(self, row: Mapping[str, Any]) -> np.ndarray:
        """
        Flatten one raw row (column name -> value) into the backend layout.
        """
        out = np.zeros(self.full_width, dtype=np.float32)

        for i in range(self.cats):
            name = self.names[i]
            value = row.get(name)
            code = self.level_code(i, value)
            if code == UNSEEN_LEVEL and value is not None and not _is_nan(value):
                _warn_unseen(name, 1)
            slot = self._slot(i, code)
            if slot is not None:
                out[slot] = 1.0

        base = self.cat_offsets[-1]
        for j in range(self.nums):
            value = row.get(self.names[self.cats + j])
            out[base + j] = self._numeric(value, j)

        return out

    def encode_frame(self, frame: pd.DataFrame) -> np.ndarray | sp.csr_matrix:
        """
        Flatten a whole frame. Missing columns are treated as all-missing.
        """
        n = len(frame)
        out = np.zeros((n, self.full_width), dtype=np.float32)
        rows = np.arange(n)

        for i in range(self.cats):
            name = self.names[i]
            if name not in frame.columns:
                logs.warning(f"[EncodingDescriptor] column {name} missing, encoded as missing")
                continue

            values = frame[name]
            codes = pd.Categorical(
                values.astype("string"), categories=list(self.domains[i])
            ).codes.astype(np.int64)

            unseen = int(((codes == UNSEEN_LEVEL) & values.notna().to_numpy()).sum())
            if unseen:
                _warn_unseen(name, unseen)

            keep = codes != UNSEEN_LEVEL
            if not self.use_all_factor_levels:
                keep &= codes != 0
                codes = codes - 1
            out[rows[keep], self.cat_offsets[i] + codes[keep]] = 1.0

        base = self.cat_offsets[-1]
        for j in range(self.nums):
            name = self.names[self.cats + j]
            if name not in frame.columns:
                logs.warning(f"[EncodingDescriptor] column {name} missing, encoded as missing")
                col = np.full(n, np.nan)
            else:
                col = pd.to_numeric(frame[name], errors="coerce").to_numpy(dtype=np.float64)
            if self.impute_means:
                col = np.where(np.isnan(col), self.num_means[j], col)
            out[:, base + j] = col

        if self.sparse:
            return sp.csr_matrix(out)
        return out

    def _numeric(self, value: Any, j: int) -> float:
        if value is None or _is_nan(value):
            return self.num_means[j] if self.impute_means else np.nan
        return float(value)

    def _estimate_density(self, frame: pd.DataFrame) -> float:
        if len(frame) == 0 or self.full_width == 0:
            return 1.0
        nonzero = 0
        for name in self.names[: self.cats]:
            nonzero += int(frame[name].notna().sum())
        for name in self.names[self.cats:]:
            col = pd.to_numeric(frame[name], errors="coerce")
            nonzero += int((col.fillna(1.0) != 0).sum())
        return nonzero / float(len(frame) * self.full_width)

    # ======================================================================
    # Persistence
    # ======================================================================
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "CategoricalEncodingDescriptor":
        d = dict(raw)
        d["names"] = tuple(d["names"])
        d["domains"] = tuple(tuple(dom) for dom in d["domains"])
        d["cat_offsets"] = tuple(d["cat_offsets"])
        d["num_means"] = tuple(d.get("num_means", ()))
        if len(d["cat_offsets"]) != len(d["domains"]) + 1:
            raise ContractViolation("cat_offsets must have one entry per categorical column plus one")
        return cls(**d)


def _is_nan(value: Any) -> bool:
    return pd.api.types.is_scalar(value) and bool(pd.isna(value))


def _warn_unseen(column: str, count: int) -> None:
    logs.warning(
        f"[{UnseenCategoryWarning.__name__}] column={column} rows={count} "
        f"level(s) unseen in training, encoded as missing"
    )
