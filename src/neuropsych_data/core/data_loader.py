from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import logging

import pandas as pd

from neuropsych_data.config import (
    CATEGORICAL_COLUMNS,
    FILE_PATTERN,
    NUMERIC_COLUMNS,
    SOURCE_COLUMN,
)
from neuropsych_data.core.errors import InputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciledSchema:
    """
    Union of the columns found across every score file of one ingestion run.

    columns keeps the order in which each name was first seen; names are
    compared case-sensitively. sources lists the files that contributed.
    """
    columns: Tuple[str, ...]
    sources: Tuple[str, ...]

    def missing_from(self, present: Sequence[str]) -> List[str]:
        seen = set(present)
        return [c for c in self.columns if c not in seen]


@dataclass
class ReconcileResult:
    records: pd.DataFrame
    schema: ReconciledSchema
    rows_by_file: Dict[str, int] = field(default_factory=dict)
    coerced_counts: Dict[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

def discover_score_files(input_dir: Path | str, pattern: Optional[str] = None) -> List[Path]:
    """
    Return the score exports under input_dir, sorted by name.

    Raises InputError if the directory does not exist or nothing matches.
    """
    root = Path(input_dir)
    pattern = (pattern or FILE_PATTERN).strip() or "*.csv"

    if not root.is_dir():
        raise InputError(f"Score directory does not exist: {root}")

    files = sorted(p for p in root.glob(pattern) if p.is_file())
    if not files:
        raise InputError(f"No files matching '{pattern}' found in: {root}")

    logger.info("Discovered %s score file(s) in %s", len(files), root)
    return files


# ---------------------------------------------------------------------------
# Schema reconciliation
# ---------------------------------------------------------------------------

def reconcile_schema(frames: Sequence[Tuple[str, pd.DataFrame]]) -> ReconciledSchema:
    columns: List[str] = []
    seen = set()
    for _, df in frames:
        for col in df.columns:
            if col == SOURCE_COLUMN or col in seen:
                continue
            seen.add(col)
            columns.append(col)
    return ReconciledSchema(
        columns=tuple(columns),
        sources=tuple(name for name, _ in frames),
    )


def _read_score_file(path: Path) -> Optional[pd.DataFrame]:
    try:
        # Everything as text first; numeric parsing happens once, after the union.
        return pd.read_csv(path, dtype=str, skipinitialspace=True)
    except pd.errors.EmptyDataError:
        logger.warning("Skipping empty score file: %s", path.name)
        return None
    except (UnicodeDecodeError, pd.errors.ParserError) as exc:
        raise InputError(f"Could not read score file {path.name}: {exc}") from exc


def _normalize_text_column(series: pd.Series) -> pd.Series:
    out = series.astype("object").where(series.notna(), None)
    out = out.map(lambda v: v.strip() if isinstance(v, str) else v)
    return out.map(lambda v: None if isinstance(v, str) and v == "" else v)


def coerce_numeric_columns(
    df: pd.DataFrame,
    columns: Optional[Sequence[str]] = None,
) -> Dict[str, int]:
    """
    Parse numeric columns in place. Cells that were present but do not parse
    become null; the number of such cells is returned per column.
    """
    counts: Dict[str, int] = {}
    for col in columns or NUMERIC_COLUMNS:
        if col not in df.columns:
            continue
        before = df[col]
        present = before.notna() & (before.astype(str).str.strip() != "")
        parsed = pd.to_numeric(before, errors="coerce").astype("float64")
        failed = int((present & parsed.isna()).sum())
        if failed:
            bad = before[present & parsed.isna()].astype(str).unique().tolist()[:5]
            logger.warning(
                "Coerced %s non-numeric value(s) in column '%s' to null (e.g. %s)",
                failed,
                col,
                bad,
            )
        counts[col] = failed
        df[col] = parsed
    return counts


def load_score_files(
    input_dir: Path | str,
    pattern: Optional[str] = None,
) -> ReconcileResult:
    """
    Read every score export under input_dir into one row-aligned frame.

    Each file is reindexed to the union schema (absent columns are null),
    tagged with SOURCE_COLUMN and appended in file order. Rows are not
    deduplicated here.
    """
    paths = discover_score_files(input_dir, pattern=pattern)

    frames: List[Tuple[str, pd.DataFrame]] = []
    for path in paths:
        df = _read_score_file(path)
        if df is None:
            continue
        df.columns = [str(c).strip() for c in df.columns]
        frames.append((path.name, df))

    if not frames:
        raise InputError(f"All score files in {input_dir} were empty.")

    schema = reconcile_schema(frames)

    aligned: List[pd.DataFrame] = []
    rows_by_file: Dict[str, int] = {}
    for name, df in frames:
        missing = schema.missing_from(list(df.columns))
        if missing:
            logger.debug("%s lacks columns %s; filling with null", name, missing)
        out = df.reindex(columns=list(schema.columns))
        out[SOURCE_COLUMN] = name
        rows_by_file[name] = len(out)
        aligned.append(out)

    records = pd.concat(aligned, ignore_index=True)

    for col in records.columns:
        if col in NUMERIC_COLUMNS:
            continue
        if col in CATEGORICAL_COLUMNS or records[col].dtype == object:
            records[col] = _normalize_text_column(records[col])

    coerced = coerce_numeric_columns(records)

    logger.info(
        "Reconciled %s row(s) from %s file(s) into %s column(s)",
        len(records),
        len(frames),
        len(schema.columns),
    )

    return ReconcileResult(
        records=records,
        schema=schema,
        rows_by_file=rows_by_file,
        coerced_counts=coerced,
    )
