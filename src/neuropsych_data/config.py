from __future__ import annotations

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------

# Root of the project (repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Data directories
DATA_DIR = PROJECT_ROOT / "data"
INPUT_DIR = Path(os.getenv("NEURO_INPUT_DIR", "").strip() or DATA_DIR / "csv")
OUTPUT_DIR = Path(os.getenv("NEURO_OUTPUT_DIR", "").strip() or DATA_DIR)

# Optional score-type lookup table (.csv / .xlsx). Empty => built-in mappings.
SCORE_LOOKUP_PATH = os.getenv("NEURO_SCORE_LOOKUP", "").strip()

# ---------------------------------------------------------------------------
# App identity
# ---------------------------------------------------------------------------

APP_NAME = "Neuropsych Data Explorer"
APP_VERSION = "0.1.0"

LOG_LEVEL = os.getenv("NEURO_LOG_LEVEL", "INFO").strip().upper() or "INFO"

# ---------------------------------------------------------------------------
# Ingestion
#
# One delimited export per instrument lives under INPUT_DIR. Only files that
# match FILE_PATTERN are picked up.
# ---------------------------------------------------------------------------

FILE_PATTERN = os.getenv("NEURO_FILE_PATTERN", "*.csv").strip() or "*.csv"

# "csv", "parquet", "feather" or "all"
OUTPUT_FORMAT = os.getenv("NEURO_OUTPUT_FORMAT", "csv").strip().lower() or "csv"

# Columns parsed as floats; unparseable cells become null.
NUMERIC_COLUMNS = ["raw_score", "score", "percentile"]

# Categorical attributes kept as nullable strings.
CATEGORICAL_COLUMNS = [
    "domain",
    "subdomain",
    "narrow",
    "pass",
    "verbal",
    "timed",
    "test_type",
    "score_type",
]

SOURCE_COLUMN = "source_filename"

# ---------------------------------------------------------------------------
# Datasets and grouping keys
# ---------------------------------------------------------------------------

DATASET_NAMES = ["neuropsych", "neurocog", "neurobehav", "validity"]

NEUROCOG_GROUPS = ["domain", "subdomain", "narrow", "pass", "verbal", "timed"]
NEUROBEHAV_GROUPS = ["domain", "subdomain", "narrow"]
VALIDITY_GROUPS = ["domain", "subdomain", "narrow"]

DEFAULT_GROUPING = {
    "neuropsych": [],
    "neurocog": NEUROCOG_GROUPS,
    "neurobehav": NEUROBEHAV_GROUPS,
    "validity": VALIDITY_GROUPS,
}
