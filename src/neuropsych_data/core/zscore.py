"""
Percentile rank -> standard-normal z conversion.

Boundary policy
---------------
The inverse normal CDF diverges at 0 and 100, so percentiles are clamped to
[PERCENTILE_FLOOR, PERCENTILE_CEILING] = [0.5, 99.5] before conversion:

  - p = 0   is converted as p = 0.5   (z ~ -2.576)
  - p = 100 is converted as p = 99.5  (z ~ +2.576)

The clamp is symmetric and keeps the mapping monotone non-decreasing over the
whole closed range [0, 100]. p = 50 maps to exactly 0. Missing percentiles
give missing z; anything outside [0, 100] raises ValidationError.
"""
from __future__ import annotations

from typing import Optional

import math

import numpy as np
import pandas as pd
from scipy.stats import norm

from neuropsych_data.core.errors import ValidationError

PERCENTILE_MIN = 0.0
PERCENTILE_MAX = 100.0
PERCENTILE_FLOOR = 0.5
PERCENTILE_CEILING = 99.5


def _is_missing(p) -> bool:
    if p is None:
        return True
    try:
        return bool(pd.isna(p))
    except (TypeError, ValueError):
        return False


def percentile_to_z(p) -> Optional[float]:
    if _is_missing(p):
        return None
    try:
        value = float(p)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Percentile is not numeric: {p!r}") from exc

    if math.isnan(value) or value < PERCENTILE_MIN or value > PERCENTILE_MAX:
        raise ValidationError(f"Percentile must be within [0, 100], got {p!r}")

    if value == 50.0:
        return 0.0
    clamped = min(max(value, PERCENTILE_FLOOR), PERCENTILE_CEILING)
    return float(norm.ppf(clamped / 100.0))


def percentiles_to_z(percentiles: pd.Series) -> pd.Series:
    """
    Vectorized percentile_to_z. Nulls stay null (NaN); the index is preserved.
    """
    p = pd.to_numeric(percentiles, errors="coerce").astype("float64")
    present = p.notna()
    out_of_range = present & ((p < PERCENTILE_MIN) | (p > PERCENTILE_MAX))
    if out_of_range.any():
        bad = p[out_of_range].unique().tolist()[:10]
        raise ValidationError(
            f"{int(out_of_range.sum())} percentile value(s) outside [0, 100]: {bad}"
        )

    clamped = p.clip(lower=PERCENTILE_FLOOR, upper=PERCENTILE_CEILING)
    z = norm.ppf(clamped.to_numpy() / 100.0)
    z = np.where(p.to_numpy() == 50.0, 0.0, z)
    return pd.Series(z, index=p.index, dtype="float64").where(present)
