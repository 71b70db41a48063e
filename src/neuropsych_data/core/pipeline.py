from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

import logging
import time

import pandas as pd

from neuropsych_data.config import OUTPUT_DIR, OUTPUT_FORMAT
from neuropsych_data.core.aggregation import aggregate_datasets
from neuropsych_data.core.classifier import ScoreClassifier, deduplicate
from neuropsych_data.core.data_loader import ReconciledSchema, load_score_files
from neuropsych_data.core.lookup import ScoreTypeLookup
from neuropsych_data.core.writer import DatasetWriter, OutputFormat, WrittenArtifact
from neuropsych_data.core.zscore import percentiles_to_z

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    datasets: Dict[str, pd.DataFrame]
    schema: ReconciledSchema
    artifacts: List[WrittenArtifact] = field(default_factory=list)
    coerced_counts: Dict[str, int] = field(default_factory=dict)
    elapsed_seconds: float = 0.0


def add_z_scores(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    if "percentile" in out.columns:
        out["z"] = percentiles_to_z(out["percentile"])
    else:
        out["z"] = pd.Series(float("nan"), index=out.index, dtype="float64")
    return out


def load_data(
    input_dir: Path | str,
    output_dir: Optional[Path | str] = None,
    output_format: OutputFormat | str = OUTPUT_FORMAT,
    return_data: bool = False,
    grouping: Optional[Mapping[str, Sequence[str]]] = None,
    lookup: Optional[ScoreTypeLookup] = None,
    pattern: Optional[str] = None,
    writer: Optional[DatasetWriter] = None,
) -> IngestResult:
    """
    One full ingestion run: reconcile -> deduplicate/classify -> z -> group
    statistics -> persist.

    Every run recomputes all four datasets from the current source files and
    overwrites existing artifacts. With return_data=True nothing is written.
    """
    t0 = time.perf_counter()
    fmt = OutputFormat.parse(output_format)

    reconciled = load_score_files(input_dir, pattern=pattern)

    neuropsych = add_z_scores(deduplicate(reconciled.records))

    classifier = ScoreClassifier(lookup)
    datasets = aggregate_datasets(classifier.classify(neuropsych), grouping)

    artifacts: List[WrittenArtifact] = []
    if not return_data:
        target = Path(output_dir) if output_dir is not None else OUTPUT_DIR
        artifacts = (writer or DatasetWriter()).write(datasets, target, fmt)

    elapsed = time.perf_counter() - t0
    logger.info("Processing complete in %0.2fs", elapsed)

    return IngestResult(
        datasets=datasets,
        schema=reconciled.schema,
        artifacts=artifacts,
        coerced_counts=reconciled.coerced_counts,
        elapsed_seconds=elapsed,
    )
