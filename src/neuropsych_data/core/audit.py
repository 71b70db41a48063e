from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import math

import pandas as pd

from neuropsych_data.core.aggregation import Z_COL, z_mean_col, z_sd_col

DOMAIN_COL = "domain"
PERCENTILE_COL = "percentile"
SUMMARY_STREAMS = ("neurocog", "neurobehav")


@dataclass(frozen=True)
class GroupStatistic:
    """
    Aggregate z facts for one value of a grouping key inside one domain.

    These are the numbers the report layer is allowed to display for a
    domain/grouping-key pair.
    """
    key: str
    value: str
    z_mean: Optional[float]
    z_sd: Optional[float]
    n: int


def _clean(x) -> Optional[float]:
    if x is None:
        return None
    try:
        f = float(x)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(f) else f


@dataclass
class DomainStatsIndex:
    """
    Read-only view over an aggregated dataset, answering
    get(domain, grouping_key) -> [GroupStatistic, ...].
    """
    facts: Dict[Tuple[str, str], List[GroupStatistic]] = field(default_factory=dict)

    @classmethod
    def from_dataset(cls, df: pd.DataFrame, group_keys: Optional[Sequence[str]] = None) -> "DomainStatsIndex":
        if DOMAIN_COL not in df.columns:
            return cls()

        if group_keys is None:
            group_keys = [c[len("z_mean_"):] for c in df.columns if c.startswith("z_mean_")]

        z = _numeric(df, Z_COL)

        facts: Dict[Tuple[str, str], List[GroupStatistic]] = {}
        for key in group_keys:
            mean_col, sd_col = z_mean_col(key), z_sd_col(key)
            if key not in df.columns or mean_col not in df.columns:
                continue

            # key may itself be "domain"; each column is selected once.
            group_cols = list(dict.fromkeys([DOMAIN_COL, key]))
            work = df[list(dict.fromkeys(group_cols + [mean_col, sd_col]))].copy()
            work["_z_present"] = z.notna()
            work = work[work[group_cols].notna().all(axis=1)]

            for group, grp in work.groupby(group_cols, sort=True):
                if not isinstance(group, tuple):
                    group = (group,)
                domain, value = group[0], group[-1]
                first = grp.iloc[0]
                facts.setdefault((str(domain), key), []).append(
                    GroupStatistic(
                        key=key,
                        value=str(value),
                        z_mean=_clean(first[mean_col]),
                        z_sd=_clean(first[sd_col]),
                        n=int(grp["_z_present"].sum()),
                    )
                )
        return cls(facts=facts)

    def get(self, domain: str, grouping_key: str) -> List[GroupStatistic]:
        return list(self.facts.get((str(domain), grouping_key), []))

    def domains(self) -> List[str]:
        return sorted({d for d, _ in self.facts})


def _numeric(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series(float("nan"), index=df.index, dtype="float64")
    return pd.to_numeric(df[col], errors="coerce")


def summarize_domains(
    datasets: Mapping[str, pd.DataFrame],
    by_stream: bool = False,
    include_all: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Per-domain summary across the cognitive and rating-scale datasets.

    Only rows with a percentile contribute. Columns: domain[, stream],
    n_tests, mean_percentile, mean_z, sd_z, min_percentile, max_percentile,
    ordered by mean_percentile descending (missing last). Domains listed in
    include_all but absent from the data appear with n_tests = 0.
    """
    frames = []
    for stream in SUMMARY_STREAMS:
        df = datasets.get(stream)
        if df is None or df.empty or DOMAIN_COL not in df.columns:
            continue
        part = pd.DataFrame(
            {
                "stream": stream,
                DOMAIN_COL: df[DOMAIN_COL],
                PERCENTILE_COL: _numeric(df, PERCENTILE_COL),
                Z_COL: _numeric(df, Z_COL),
            }
        )
        frames.append(part)

    group_cols = [DOMAIN_COL, "stream"] if by_stream else [DOMAIN_COL]
    columns = group_cols + ["n_tests", "mean_percentile", "mean_z", "sd_z", "min_percentile", "max_percentile"]

    if frames:
        rows = pd.concat(frames, ignore_index=True)
        rows = rows[rows[PERCENTILE_COL].notna() & rows[DOMAIN_COL].notna()]
    else:
        rows = pd.DataFrame(columns=["stream", DOMAIN_COL, PERCENTILE_COL, Z_COL])

    if rows.empty:
        summary = pd.DataFrame(columns=columns)
    else:
        summary = (
            rows.groupby(group_cols, sort=False)
            .agg(
                n_tests=(PERCENTILE_COL, "size"),
                mean_percentile=(PERCENTILE_COL, "mean"),
                mean_z=(Z_COL, "mean"),
                sd_z=(Z_COL, "std"),
                min_percentile=(PERCENTILE_COL, "min"),
                max_percentile=(PERCENTILE_COL, "max"),
            )
            .reset_index()
        )

    if include_all:
        present = set(summary[DOMAIN_COL].astype(str)) if not summary.empty else set()
        missing = [d for d in include_all if d not in present]
        if missing:
            filler = pd.DataFrame({DOMAIN_COL: missing, "n_tests": 0})
            summary = pd.concat([summary, filler], ignore_index=True)

    summary["n_tests"] = summary["n_tests"].fillna(0).astype(int)
    summary = summary.sort_values(
        ["mean_percentile", DOMAIN_COL],
        ascending=[False, True],
        na_position="last",
    ).reset_index(drop=True)
    return summary.reindex(columns=columns)
