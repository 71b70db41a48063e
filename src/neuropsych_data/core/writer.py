from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import logging
import os

import pandas as pd
import polars as pl
import pyarrow.feather as feather

from neuropsych_data.core.errors import PersistenceError

logger = logging.getLogger(__name__)


class OutputFormat(str, Enum):
    CSV = "csv"
    PARQUET = "parquet"
    FEATHER = "feather"
    ALL = "all"

    @classmethod
    def parse(cls, value: "OutputFormat | str") -> "OutputFormat":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text == "arrow":
            return cls.FEATHER
        try:
            return cls(text)
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"output_format must be one of: {valid}. Got: {value!r}") from None

    def expand(self) -> List["OutputFormat"]:
        if self is OutputFormat.ALL:
            return [OutputFormat.PARQUET, OutputFormat.FEATHER, OutputFormat.CSV]
        return [self]


FILE_SUFFIX: Dict[OutputFormat, str] = {
    OutputFormat.CSV: ".csv",
    OutputFormat.PARQUET: ".parquet",
    OutputFormat.FEATHER: ".feather",
}


@dataclass(frozen=True)
class WriterStrategy:
    name: str
    write: Callable[[pd.DataFrame, Path], None]


@dataclass(frozen=True)
class WrittenArtifact:
    dataset: str
    format: str
    path: Path
    writer: str
    rows: int


# ---------------------------------------------------------------------------
# Writer implementations
# ---------------------------------------------------------------------------

def _write_csv_pandas(df: pd.DataFrame, path: Path) -> None:
    df.to_csv(path, index=False, encoding="utf-8")


def _write_parquet_pyarrow(df: pd.DataFrame, path: Path) -> None:
    df.to_parquet(path, engine="pyarrow", index=False)


def _write_parquet_polars(df: pd.DataFrame, path: Path) -> None:
    pl.from_pandas(df).write_parquet(path)


def _write_feather_pyarrow(df: pd.DataFrame, path: Path) -> None:
    feather.write_feather(df.reset_index(drop=True), str(path))


def _write_feather_polars(df: pd.DataFrame, path: Path) -> None:
    pl.from_pandas(df).write_ipc(path, compat_level=pl.CompatLevel.oldest())


def default_strategies() -> Dict[OutputFormat, List[WriterStrategy]]:
    """
    Writers per format in the order they are tried. CSV has a single writer;
    a CSV failure is fatal.
    """
    return {
        OutputFormat.PARQUET: [
            WriterStrategy("pyarrow", _write_parquet_pyarrow),
            WriterStrategy("polars", _write_parquet_polars),
        ],
        OutputFormat.FEATHER: [
            WriterStrategy("pyarrow", _write_feather_pyarrow),
            WriterStrategy("polars", _write_feather_polars),
        ],
        OutputFormat.CSV: [
            WriterStrategy("pandas", _write_csv_pandas),
        ],
    }


# ---------------------------------------------------------------------------
# Dataset writer
# ---------------------------------------------------------------------------

class DatasetWriter:
    def __init__(self, strategies: Optional[Mapping[OutputFormat, Sequence[WriterStrategy]]] = None) -> None:
        self.strategies: Dict[OutputFormat, List[WriterStrategy]] = default_strategies()
        if strategies:
            for fmt, chain in strategies.items():
                self.strategies[OutputFormat.parse(fmt)] = list(chain)

    def write_one(self, name: str, df: pd.DataFrame, output_dir: Path, fmt: OutputFormat) -> WrittenArtifact:
        path = Path(output_dir) / f"{name}{FILE_SUFFIX[fmt]}"
        # Attempts go to a sibling file; the artifact only appears once complete.
        tmp_path = path.with_name(f".{path.name}.tmp")
        chain = self.strategies.get(fmt, [])
        failures: List[Tuple[str, BaseException]] = []

        for i, strategy in enumerate(chain):
            try:
                strategy.write(df, tmp_path)
                os.replace(tmp_path, path)
            except Exception as exc:
                tmp_path.unlink(missing_ok=True)
                failures.append((strategy.name, exc))
                if i + 1 < len(chain):
                    logger.warning(
                        "%s write failed for dataset '%s' using %s (%s). Falling back to %s.",
                        fmt.value,
                        name,
                        strategy.name,
                        exc,
                        chain[i + 1].name,
                    )
                continue

            suffix = " (fallback)" if failures else ""
            logger.info("[OK] Wrote%s: %s [%s, %s row(s)]", suffix, path.name, strategy.name, len(df))
            return WrittenArtifact(
                dataset=name,
                format=fmt.value,
                path=path,
                writer=strategy.name,
                rows=len(df),
            )

        if path.exists():
            logger.warning("Removing stale artifact %s", path.name)
            path.unlink()
        logger.error("All %s writers failed for dataset '%s'", fmt.value, name)
        raise PersistenceError(name, fmt.value, failures)

    def write(
        self,
        datasets: Mapping[str, pd.DataFrame],
        output_dir: Path | str,
        output_format: OutputFormat | str = OutputFormat.CSV,
    ) -> List[WrittenArtifact]:
        """
        Write one artifact per dataset per requested format, overwriting
        existing files. Raises PersistenceError as soon as a dataset cannot
        be written in a requested format.
        """
        fmt = OutputFormat.parse(output_format)
        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)

        written: List[WrittenArtifact] = []
        for target in fmt.expand():
            logger.info("Writing %s files to %s", target.value, out_dir)
            for name, df in datasets.items():
                written.append(self.write_one(name, df, out_dir, target))

        logger.info("Successfully wrote %s artifact(s) to: %s", len(written), out_dir)
        return written


def write_datasets(
    datasets: Mapping[str, pd.DataFrame],
    output_dir: Path | str,
    output_format: OutputFormat | str = OutputFormat.CSV,
) -> List[WrittenArtifact]:
    return DatasetWriter().write(datasets, output_dir, output_format)


def read_artifact(path: Path | str) -> pd.DataFrame:
    """Read a persisted dataset back into pandas, whatever its format."""
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(p)
    if suffix == ".parquet":
        return pd.read_parquet(p, engine="pyarrow")
    if suffix in {".feather", ".arrow"}:
        return feather.read_feather(str(p))
    raise ValueError(f"Unsupported artifact type: {p.suffix}")
