"""Test configuration and fixtures."""

from pathlib import Path
from typing import Dict, List

import pandas as pd
import pytest


def write_csv(directory: Path, name: str, rows: List[Dict], columns: List[str] = None) -> Path:
    path = directory / name
    pd.DataFrame(rows, columns=columns).to_csv(path, index=False)
    return path


@pytest.fixture
def score_dir(tmp_path):
    """Directory with two heterogeneous score exports."""
    src = tmp_path / "csv"
    src.mkdir()
    write_csv(
        src,
        "wisc5.csv",
        [
            {
                "test": "wisc5",
                "test_name": "WISC-V",
                "scale": "Full Scale IQ",
                "raw_score": "",
                "score": 100,
                "percentile": 50,
                "domain": "General Cognitive Ability",
                "subdomain": "Intelligence",
                "narrow": "General Intelligence",
                "pass": "Simultaneous",
                "verbal": "Nonverbal",
                "timed": "Untimed",
                "test_type": "npsych_test",
                "score_type": "standard_score",
            },
            {
                "test": "wisc5",
                "test_name": "WISC-V",
                "scale": "Digit Span",
                "raw_score": 24,
                "score": 7,
                "percentile": 16,
                "domain": "Attention/Executive",
                "subdomain": "Working Memory",
                "narrow": "Working Memory Capacity",
                "pass": "Attention",
                "verbal": "Verbal",
                "timed": "Untimed",
                "test_type": "npsych_test",
                "score_type": "scaled_score",
            },
        ],
    )
    write_csv(
        src,
        "basc3.csv",
        [
            {
                "test": "basc3_prs",
                "test_name": "BASC-3 PRS",
                "scale": "Anxiety",
                "score": 65,
                "percentile": 91,
                "domain": "Emotional/Behavioral/Social/Personality",
                "subdomain": "Internalizing",
                "test_type": "rating_scale",
            },
            {
                "test": "basc3_prs",
                "test_name": "BASC-3 PRS",
                "scale": "F Index",
                "score": "Acceptable",
                "percentile": "",
                "domain": "Symptom Validity",
                "test_type": "symptom_validity",
            },
        ],
    )
    return src


@pytest.fixture
def scenario_dir(tmp_path):
    """The two-file WISC-V / BASC scenario."""
    src = tmp_path / "scenario"
    src.mkdir()
    write_csv(
        src,
        "a.csv",
        [{"scale": "WISC-V FSIQ", "percentile": 50, "test_type": "npsych_test", "domain": "IQ"}],
    )
    write_csv(
        src,
        "b.csv",
        [{"scale": "BASC Anxiety", "percentile": 84, "test_type": "rating_scale", "domain": "Emotion"}],
    )
    return src


@pytest.fixture
def sample_dataset():
    """Small aggregated-looking dataset used by writer and query tests."""
    return pd.DataFrame(
        {
            "test": ["wisc5", "wisc5", "rbans"],
            "scale": ["Vocabulary", "Coding", "List Recall"],
            "percentile": [63.0, None, 9.0],
            "domain": ["Verbal", "Speed", None],
            "z": [0.332, None, -1.341],
            "source_filename": ["wisc5.csv", "wisc5.csv", "rbans.csv"],
        }
    )
