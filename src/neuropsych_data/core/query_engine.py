from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import logging

import pandas as pd
import polars as pl

from neuropsych_data.config import NUMERIC_COLUMNS, OUTPUT_DIR
from neuropsych_data.core.aggregation import Z_COL
from neuropsych_data.core.errors import InputError, QueryError

logger = logging.getLogger(__name__)

# When a dataset is persisted in several formats, the first suffix listed
# here wins.
SUFFIX_PRECEDENCE = [".parquet", ".feather", ".arrow", ".csv"]


# ---------------------------------------------------------------------------
# Artifact discovery
# ---------------------------------------------------------------------------

def discover_artifacts(data_dir: Path | str) -> Dict[str, Path]:
    """
    Map relation name (file stem) -> artifact path for every supported file
    directly under data_dir. Suffixes are matched case-insensitively.
    """
    root = Path(data_dir)
    if not root.is_dir():
        raise InputError(f"Data directory does not exist: {root}")

    rank = {s: i for i, s in enumerate(SUFFIX_PRECEDENCE)}
    chosen: Dict[str, Path] = {}
    for path in sorted(root.iterdir()):
        suffix = path.suffix.lower()
        if not path.is_file() or suffix not in rank:
            continue
        name = path.stem
        current = chosen.get(name)
        if current is None or rank[suffix] < rank[current.suffix.lower()]:
            if current is not None:
                logger.debug("Relation %s: preferring %s over %s", name, path.name, current.name)
            chosen[name] = path
    return chosen


def _csv_float_columns(path: Path) -> Dict[str, pl.DataType]:
    # An all-empty column would otherwise be inferred as String.
    header = pl.read_csv(path, n_rows=0).columns
    floats = set(NUMERIC_COLUMNS) | {Z_COL}
    return {
        col: pl.Float64
        for col in header
        if col in floats or col.startswith(("z_mean_", "z_sd_"))
    }


def _scan(path: Path) -> pl.LazyFrame:
    suffix = path.suffix.lower()
    if suffix == ".parquet":
        return pl.scan_parquet(path)
    if suffix in {".feather", ".arrow"}:
        return pl.scan_ipc(path)
    return pl.scan_csv(path, infer_schema_length=10_000, schema_overrides=_csv_float_columns(path))


# ---------------------------------------------------------------------------
# Query entry point
# ---------------------------------------------------------------------------

def query(expression: str, data_dir: Path | str = OUTPUT_DIR) -> pd.DataFrame:
    """
    Run a SQL expression against the datasets persisted under data_dir.

    Each artifact is exposed as a relation named after its file stem
    (neuropsych, neurocog, ...), regardless of format. A fresh SQL context
    is used per call.
    """
    text = (expression or "").strip()
    if not text:
        raise QueryError("Query expression is empty.", expression or "")

    artifacts = discover_artifacts(data_dir)
    if not artifacts:
        raise QueryError(f"No .csv, .parquet or .feather files found in: {data_dir}", text)

    logger.info("Registering %s relation(s): %s", len(artifacts), sorted(artifacts))

    try:
        with pl.SQLContext() as ctx:
            for name, path in artifacts.items():
                ctx.register(name, _scan(path))
            result = ctx.execute(text, eager=True)
    except pl.exceptions.PolarsError as exc:
        raise QueryError(f"Query failed: {exc}", text) from exc

    return result.to_pandas()


# ---------------------------------------------------------------------------
# Canned queries
# ---------------------------------------------------------------------------

def get_example_queries() -> Dict[str, str]:
    return {
        # All IQ composites
        "iq_scores": """
            SELECT test, test_name, scale, score, percentile
            FROM neurocog
            WHERE domain = 'General Cognitive Ability'
              AND scale LIKE '%IQ%'
            ORDER BY percentile DESC
        """,
        # Weak cognitive scores alongside elevated ratings from the same test
        "cross_domain": """
            SELECT
                nc.domain AS cognitive_domain,
                nc.percentile AS cognitive_percentile,
                nb.domain AS behavioral_domain,
                nb.percentile AS behavioral_percentile
            FROM neurocog nc
            INNER JOIN neurobehav nb
                ON nc.test = nb.test
            WHERE nc.percentile < 25
              AND nb.percentile > 75
        """,
        "domain_summary": """
            SELECT
                domain,
                COUNT(*) AS n_tests,
                AVG(percentile) AS mean_percentile,
                CASE
                    WHEN AVG(percentile) >= 75 THEN 'Above Average'
                    WHEN AVG(percentile) >= 25 THEN 'Average'
                    ELSE 'Below Average'
                END AS performance_category
            FROM neurocog
            GROUP BY domain
            ORDER BY mean_percentile DESC
        """,
        "validity_check": """
            SELECT
                test_name,
                scale,
                score,
                CASE
                    WHEN score < 45 THEN 'Invalid'
                    WHEN score < 50 THEN 'Questionable'
                    ELSE 'Valid'
                END AS validity_status
            FROM validity
            WHERE domain = 'Performance Validity'
        """,
        "adhd_profile": """
            SELECT
                scale,
                percentile,
                CASE
                    WHEN percentile >= 93 THEN 'Clinically Significant'
                    WHEN percentile >= 85 THEN 'At Risk'
                    ELSE 'Normal Range'
                END AS clinical_significance
            FROM neurobehav
            WHERE domain = 'ADHD'
            ORDER BY percentile DESC
        """,
    }


def list_example_queries() -> List[str]:
    return sorted(get_example_queries())


def run_example_query(query_name: str, data_dir: Path | str = OUTPUT_DIR) -> pd.DataFrame:
    queries = get_example_queries()
    if query_name not in queries:
        raise QueryError(
            f"Unknown example query '{query_name}'. Available queries: {', '.join(sorted(queries))}",
            query_name,
        )
    logger.info("Running example query: %s", query_name)
    return query(queries[query_name], data_dir)
