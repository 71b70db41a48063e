"""Tests for neuropsych_data.core.writer."""

import logging

import pandas as pd
import pytest

from neuropsych_data.core.errors import PersistenceError
from neuropsych_data.core.writer import (
    DatasetWriter,
    OutputFormat,
    WriterStrategy,
    read_artifact,
    write_datasets,
)


def _boom(df, path):
    raise OSError("disk on fire")


def _partial(df, path):
    path.write_bytes(b"garbage")
    raise OSError("disk full")


def _assert_same(left: pd.DataFrame, right: pd.DataFrame) -> None:
    assert list(left.columns) == list(right.columns)
    assert len(left) == len(right)
    for col in left.columns:
        if pd.api.types.is_numeric_dtype(left[col]):
            pd.testing.assert_series_equal(
                left[col].astype("float64"),
                right[col].astype("float64"),
                check_names=False,
                atol=1e-9,
            )
        else:
            assert [None if pd.isna(v) else v for v in left[col]] == [
                None if pd.isna(v) else v for v in right[col]
            ]


class TestOutputFormat:
    def test_parse(self):
        assert OutputFormat.parse("Parquet") is OutputFormat.PARQUET
        assert OutputFormat.parse("arrow") is OutputFormat.FEATHER
        assert OutputFormat.parse(OutputFormat.ALL) is OutputFormat.ALL

    def test_parse_invalid(self):
        with pytest.raises(ValueError, match="csv, parquet, feather, all"):
            OutputFormat.parse("xlsx")

    def test_expand_all(self):
        assert set(OutputFormat.ALL.expand()) == {OutputFormat.CSV, OutputFormat.PARQUET, OutputFormat.FEATHER}


class TestRoundTrip:
    @pytest.mark.parametrize("fmt", ["csv", "parquet", "feather"])
    def test_write_and_read_back(self, tmp_path, sample_dataset, fmt):
        artifacts = write_datasets({"neurocog": sample_dataset}, tmp_path, fmt)
        assert len(artifacts) == 1
        art = artifacts[0]
        assert art.dataset == "neurocog"
        assert art.format == fmt
        assert art.path == tmp_path / f"neurocog.{fmt}"
        assert art.rows == 3

        _assert_same(sample_dataset, read_artifact(art.path))

    def test_polars_writers_round_trip(self, tmp_path, sample_dataset):
        writer = DatasetWriter(
            {
                OutputFormat.PARQUET: [DatasetWriter().strategies[OutputFormat.PARQUET][1]],
                OutputFormat.FEATHER: [DatasetWriter().strategies[OutputFormat.FEATHER][1]],
            }
        )
        for art in writer.write({"neurocog": sample_dataset}, tmp_path, "all"):
            _assert_same(sample_dataset, read_artifact(art.path))

    def test_all_writes_every_dataset_in_every_format(self, tmp_path, sample_dataset):
        datasets = {"neuropsych": sample_dataset, "validity": sample_dataset.iloc[0:0]}
        artifacts = write_datasets(datasets, tmp_path / "out", OutputFormat.ALL)
        assert len(artifacts) == 6
        names = sorted(p.name for p in (tmp_path / "out").iterdir())
        assert names == [
            "neuropsych.csv",
            "neuropsych.feather",
            "neuropsych.parquet",
            "validity.csv",
            "validity.feather",
            "validity.parquet",
        ]

    def test_overwrites_existing(self, tmp_path, sample_dataset):
        write_datasets({"neurocog": sample_dataset}, tmp_path, "csv")
        write_datasets({"neurocog": sample_dataset.iloc[:1]}, tmp_path, "csv")
        assert len(read_artifact(tmp_path / "neurocog.csv")) == 1


class TestFallback:
    @pytest.mark.parametrize("fmt", [OutputFormat.PARQUET, OutputFormat.FEATHER])
    def test_secondary_writer_used(self, tmp_path, sample_dataset, caplog, fmt):
        default = DatasetWriter().strategies[fmt]
        writer = DatasetWriter({fmt: [WriterStrategy("broken", _boom)] + default[1:]})

        with caplog.at_level(logging.WARNING):
            artifacts = writer.write({"neurobehav": sample_dataset}, tmp_path, fmt)

        assert artifacts[0].writer == "polars"
        assert len(read_artifact(artifacts[0].path)) == len(sample_dataset)
        assert any("neurobehav" in r.message and fmt.value in r.message for r in caplog.records)

    def test_exhausted_fallbacks_raise(self, tmp_path, sample_dataset):
        writer = DatasetWriter(
            {OutputFormat.PARQUET: [WriterStrategy("a", _boom), WriterStrategy("b", _boom)]}
        )
        with pytest.raises(PersistenceError) as info:
            writer.write({"validity": sample_dataset}, tmp_path, "parquet")
        assert info.value.dataset == "validity"
        assert info.value.fmt == "parquet"
        assert [name for name, _ in info.value.failures] == ["a", "b"]

    def test_failed_writes_leave_no_artifact(self, tmp_path, sample_dataset):
        (tmp_path / "neurocog.parquet").write_bytes(b"from an earlier run")
        writer = DatasetWriter(
            {OutputFormat.PARQUET: [WriterStrategy("a", _partial), WriterStrategy("b", _partial)]}
        )
        with pytest.raises(PersistenceError):
            writer.write({"neurocog": sample_dataset}, tmp_path, "parquet")
        assert list(tmp_path.iterdir()) == []

    def test_partial_write_replaced_by_fallback(self, tmp_path, sample_dataset):
        default = DatasetWriter().strategies[OutputFormat.PARQUET]
        writer = DatasetWriter({OutputFormat.PARQUET: [WriterStrategy("partial", _partial)] + default[1:]})
        artifacts = writer.write({"neurocog": sample_dataset}, tmp_path, "parquet")
        assert [p.name for p in tmp_path.iterdir()] == ["neurocog.parquet"]
        assert len(read_artifact(artifacts[0].path)) == len(sample_dataset)

    def test_csv_failure_is_fatal(self, tmp_path, sample_dataset):
        writer = DatasetWriter({OutputFormat.CSV: [WriterStrategy("pandas", _boom)]})
        with pytest.raises(PersistenceError, match="neuropsych"):
            writer.write({"neuropsych": sample_dataset}, tmp_path, "csv")


def test_read_artifact_rejects_unknown_suffix(tmp_path):
    path = tmp_path / "x.json"
    path.write_text("{}")
    with pytest.raises(ValueError):
        read_artifact(path)
