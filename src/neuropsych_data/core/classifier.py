from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

import logging

import pandas as pd

from neuropsych_data.config import SOURCE_COLUMN
from neuropsych_data.core.lookup import ScoreTypeLookup

logger = logging.getLogger(__name__)

TEST_TYPE_COL = "test_type"


class TestType(str, Enum):
    __test__ = False

    NPSYCH_TEST = "npsych_test"
    RATING_SCALE = "rating_scale"
    PERFORMANCE_VALIDITY = "performance_validity"
    SYMPTOM_VALIDITY = "symptom_validity"


KNOWN_TEST_TYPES = frozenset(t.value for t in TestType)

# Which test_type markers land in each specialized dataset.
PARTITION_TYPES: Dict[str, frozenset] = {
    "neurocog": frozenset({TestType.NPSYCH_TEST.value}),
    "neurobehav": frozenset({TestType.RATING_SCALE.value}),
    "validity": frozenset({TestType.PERFORMANCE_VALIDITY.value, TestType.SYMPTOM_VALIDITY.value}),
}


def deduplicate(df: pd.DataFrame) -> pd.DataFrame:
    """
    Drop rows equal on every column except SOURCE_COLUMN; the first
    occurrence (and its lineage) is kept.
    """
    subset = [c for c in df.columns if c != SOURCE_COLUMN]
    if not subset:
        return df.reset_index(drop=True)
    out = df.drop_duplicates(subset=subset, keep="first").reset_index(drop=True)
    dropped = len(df) - len(out)
    if dropped:
        logger.info("Removed %s duplicate row(s)", dropped)
    return out


class ScoreClassifier:
    """
    Splits reconciled records into the four datasets by test_type.

    The lookup is only consulted for score_type_for(); partitioning never
    modifies cell values.
    """

    def __init__(self, lookup: Optional[ScoreTypeLookup] = None) -> None:
        self.lookup = lookup or ScoreTypeLookup.default()

    def classify(self, neuropsych: pd.DataFrame) -> Dict[str, pd.DataFrame]:
        if TEST_TYPE_COL in neuropsych.columns:
            types = neuropsych[TEST_TYPE_COL]
        else:
            logger.warning("No '%s' column found; specialized datasets will be empty.", TEST_TYPE_COL)
            types = pd.Series([None] * len(neuropsych), index=neuropsych.index, dtype="object")

        unknown = types[types.notna() & ~types.isin(KNOWN_TEST_TYPES)]
        if not unknown.empty:
            logger.warning(
                "%s row(s) with unrecognized test_type kept in neuropsych only: %s",
                len(unknown),
                sorted(unknown.astype(str).unique().tolist()),
            )
        unclassified = int(types.isna().sum())
        if unclassified:
            logger.info("%s row(s) without test_type kept in neuropsych only", unclassified)

        datasets: Dict[str, pd.DataFrame] = {"neuropsych": neuropsych.reset_index(drop=True)}
        for name, markers in PARTITION_TYPES.items():
            datasets[name] = neuropsych[types.isin(markers)].reset_index(drop=True)
            logger.info("%s: %s row(s)", name, len(datasets[name]))
        return datasets

    def score_type_for(self, row: pd.Series) -> Optional[str]:
        """
        The row's own score_type when present, otherwise the lookup's answer
        for its scale, test_name or test (in that order).
        """
        own = row.get("score_type")
        if own is not None and not pd.isna(own) and str(own).strip():
            return str(own).strip()
        for col in ("scale", "test_name", "test"):
            val = row.get(col)
            if val is None or pd.isna(val):
                continue
            found = self.lookup.score_type_for(val)
            if found:
                return found
        return None


def classify(neuropsych: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    return ScoreClassifier().classify(neuropsych)
