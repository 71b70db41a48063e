from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import logging

import pandas as pd

logger = logging.getLogger(__name__)

SCORE_TYPES = (
    "scaled_score",
    "standard_score",
    "t_score",
    "z_score",
    "percentile",
    "raw_score",
    "base_rate",
    "percent_mastery",
)

DEFAULT_FOOTNOTES: Dict[str, str] = {
    "standard_score": "Standard score: Mean = 100 [50th‰], SD ± 15 [16th‰, 84th‰]",
    "scaled_score": "Scaled score: Mean = 10 [50th‰], SD ± 3 [16th‰, 84th‰]",
    "t_score": "T score: Mean = 50 [50th‰], SD ± 10 [16th‰, 84th‰]",
    "z_score": "z-score: Mean = 0 [50th‰], SD ± 1 [16th‰, 84th‰]",
    "raw_score": "Raw score: Untransformed test score",
    "base_rate": "Base rate: Percentage of the normative sample at or below this score",
    "percentile": "Percentile rank: Percentage of normative sample scoring at or below this level",
    "percent_mastery": "Percent mastery: Percentage of items answered correctly",
}

# Minimal mappings used when no lookup table is supplied.
FALLBACK_SCORE_TYPE_MAP: Dict[str, Tuple[str, ...]] = {
    "scaled_score": (
        "Similarities",
        "Vocabulary",
        "Comprehension",
        "Block Design",
        "Visual Puzzles",
        "Matrix Reasoning",
        "Figure Weights",
        "Picture Concepts",
        "Digit Span",
        "Letter-Number Sequencing",
        "Coding",
        "Symbol Search",
        "Picture Naming",
        "Semantic Fluency",
        "List Learning",
        "Story Memory",
        "Figure Copy",
        "Line Orientation",
        "List Recall",
        "List Recognition",
        "Story Recall",
        "Figure Recall",
    ),
    "standard_score": (
        "Full Scale (FSIQ)",
        "Full Scale IQ",
        "Verbal Comprehension (VCI)",
        "Perceptual Reasoning (PRI)",
        "Working Memory (WMI)",
        "Processing Speed (PSI)",
        "General Ability (GAI)",
        "Cognitive Proficiency (CPI)",
        "Visual Spatial (VSI)",
        "Fluid Reasoning (FRI)",
        "RBANS Total Index",
        "Total Index",
        "Immediate Memory Index",
        "Visuospatial Index",
        "Language Index",
        "Attention Index",
        "Delayed Memory Index",
    ),
    "t_score": ("BASC3", "BASC-3", "Conners", "Conners-3", "BRIEF", "BRIEF-2"),
}

MULTI_SCORE_BATTERIES = ("RBANS", "WISC-V", "WAIS-IV", "WAIS-5", "NAB", "NAB-S", "WMS-IV")

NAME_COLUMNS = ("test_name", "test", "scale")


@dataclass(frozen=True)
class ScoreTypeLookup:
    """
    Immutable score-type -> test/scale name mapping plus footnote text.

    Build one per run (default(), from_frame() or load_score_type_lookup())
    and hand it to the components that need it.
    """
    score_type_map: Mapping[str, Tuple[str, ...]]
    footnotes: Mapping[str, str] = field(default_factory=lambda: MappingProxyType(dict(DEFAULT_FOOTNOTES)))

    def __post_init__(self) -> None:
        frozen = {k: tuple(v) for k, v in self.score_type_map.items()}
        object.__setattr__(self, "score_type_map", MappingProxyType(frozen))
        object.__setattr__(self, "footnotes", MappingProxyType(dict(self.footnotes)))

    @classmethod
    def default(cls) -> "ScoreTypeLookup":
        mapping = {st: FALLBACK_SCORE_TYPE_MAP.get(st, ()) for st in SCORE_TYPES}
        return cls(score_type_map=mapping)

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "ScoreTypeLookup":
        """
        Build from a table with a 'score_type' column and at least one of
        'test_name', 'test', 'scale'. Unknown score types are kept as-is.
        """
        lower = {str(c).strip().lower(): c for c in df.columns}
        st_col = lower.get("score_type")
        name_cols = [lower[c] for c in NAME_COLUMNS if c in lower]
        if st_col is None or not name_cols:
            raise ValueError(
                "Score-type lookup must contain 'score_type' and one of "
                f"{list(NAME_COLUMNS)}. Present columns: {list(df.columns)}"
            )

        mapping: Dict[str, List[str]] = {st: [] for st in SCORE_TYPES}
        for score_type, grp in df.groupby(df[st_col].astype(str).str.strip()):
            if not score_type or score_type.lower() == "nan":
                continue
            names = mapping.setdefault(score_type, [])
            for col in name_cols:
                for val in grp[col].dropna().astype(str).str.strip():
                    if val and val not in names:
                        names.append(val)
            logger.debug("Added %s names to %s mapping", len(names), score_type)

        return cls(score_type_map=mapping)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def get_score_groups(self, names: Iterable[str]) -> Dict[str, List[str]]:
        wanted = [str(n) for n in names]
        groups: Dict[str, List[str]] = {}
        for score_type, known in self.score_type_map.items():
            matches = [n for n in wanted if n in known]
            if matches:
                groups[score_type] = matches
        return groups

    def get_footnotes(self, score_types: Iterable[str]) -> Dict[str, str]:
        return {st: self.footnotes[st] for st in score_types if st in self.footnotes}

    def score_type_for(self, name: Optional[str]) -> Optional[str]:
        if name is None:
            return None
        key = str(name).strip()
        for score_type, known in self.score_type_map.items():
            if key in known:
                return score_type
        return None

    @staticmethod
    def is_multi_score_battery(test_name: str) -> bool:
        text = str(test_name or "").lower()
        return any(b.lower() in text for b in MULTI_SCORE_BATTERIES)


def load_score_type_lookup(path: Path | str) -> ScoreTypeLookup:
    """
    Load a lookup table from .csv or an Excel workbook (first sheet).
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Score-type lookup not found: {p}")

    suffix = p.suffix.lower()
    logger.info("Loading score-type lookup: %s", p)
    if suffix in {".xlsx", ".xls"}:
        df = pd.read_excel(p, sheet_name=0)
    elif suffix == ".csv":
        df = pd.read_csv(p, dtype=str)
    else:
        raise ValueError(f"Unsupported lookup file type: {p.suffix}")

    return ScoreTypeLookup.from_frame(df)
