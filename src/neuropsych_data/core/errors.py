from __future__ import annotations

from typing import List, Optional, Tuple


class NeuropsychDataError(Exception):
    """Base class for ingestion, persistence and query failures."""


class InputError(NeuropsychDataError):
    """Raised when the source directory is missing or has no score files."""


class ValidationError(NeuropsychDataError):
    """Raised when a value is outside its permitted range (e.g. percentile > 100)."""


class PersistenceError(NeuropsychDataError):
    """Raised when every writer for a dataset/format pair has failed."""

    def __init__(
        self,
        dataset: str,
        fmt: str,
        failures: Optional[List[Tuple[str, BaseException]]] = None,
    ) -> None:
        self.dataset = dataset
        self.fmt = fmt
        self.failures = list(failures or [])
        detail = "; ".join(f"{name}: {exc}" for name, exc in self.failures) or "no writers configured"
        super().__init__(f"Could not write dataset '{dataset}' as {fmt}. Attempts: {detail}")


class QueryError(NeuropsychDataError):
    """Raised for unknown relations or malformed query expressions."""

    def __init__(self, message: str, expression: str) -> None:
        self.expression = expression
        super().__init__(f"{message}\nQuery: {expression}")
