from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Sequence

import logging

import pandas as pd

from neuropsych_data.config import DEFAULT_GROUPING

logger = logging.getLogger(__name__)

Z_COL = "z"


def z_mean_col(key: str) -> str:
    return f"z_mean_{key}"


def z_sd_col(key: str) -> str:
    return f"z_sd_{key}"


def calculate_z_stats(df: pd.DataFrame, group_keys: Sequence[str]) -> pd.DataFrame:
    """
    Attach per-group z statistics to every row.

    For each key g present in df, rows sharing the same value of g form a
    group. z_mean_<g> is the mean and z_sd_<g> the sample SD (ddof=1) of the
    non-null z values in that group. Rows with null z still receive their
    group's values; rows with null g receive null. A group with fewer than
    two observations has a null SD.

    Returns a new frame; the input is left untouched.
    """
    out = df.copy()
    if Z_COL not in out.columns:
        out[Z_COL] = pd.Series(float("nan"), index=out.index, dtype="float64")

    z = pd.to_numeric(out[Z_COL], errors="coerce")

    for key in group_keys:
        if key not in out.columns:
            logger.debug("Grouping key '%s' not present; skipping", key)
            continue

        keys = out[key]
        usable = z.notna() & keys.notna()
        stats = z[usable].groupby(keys[usable]).agg(["mean", "std", "count"])

        out[z_mean_col(key)] = keys.map(stats["mean"]).astype("float64")
        out[z_sd_col(key)] = keys.map(stats["std"]).astype("float64")

        logger.debug(
            "Grouped on '%s': %s group(s), %s usable row(s)",
            key,
            len(stats),
            int(usable.sum()),
        )

    return out


def aggregate_datasets(
    datasets: Mapping[str, pd.DataFrame],
    grouping: Optional[Mapping[str, Sequence[str]]] = None,
) -> Dict[str, pd.DataFrame]:
    """
    Recompute grouped z statistics independently for each dataset.
    Datasets not listed in grouping are returned unchanged.
    """
    grouping = DEFAULT_GROUPING if grouping is None else grouping
    out: Dict[str, pd.DataFrame] = {}
    for name, df in datasets.items():
        keys: List[str] = list(grouping.get(name, []))
        out[name] = calculate_z_stats(df, keys) if keys else df
    return out
