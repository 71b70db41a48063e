"""End-to-end tests for neuropsych_data.core.pipeline."""

import pandas as pd
import pytest

from conftest import write_csv
from neuropsych_data import load_data, query
from neuropsych_data.core.errors import InputError, ValidationError
from neuropsych_data.core.writer import read_artifact


class TestScenario:
    def test_two_file_scenario(self, scenario_dir):
        result = load_data(scenario_dir, return_data=True)
        ds = result.datasets

        assert len(ds["neuropsych"]) == 2

        assert ds["neurocog"]["scale"].tolist() == ["WISC-V FSIQ"]
        assert ds["neurocog"]["z"].iloc[0] == 0.0

        assert ds["neurobehav"]["scale"].tolist() == ["BASC Anxiety"]
        assert ds["neurobehav"]["z"].iloc[0] == pytest.approx(1.0, abs=0.01)

        assert ds["validity"].empty
        assert result.artifacts == []

    def test_return_data_writes_nothing(self, scenario_dir, tmp_path):
        out = tmp_path / "out"
        load_data(scenario_dir, output_dir=out, return_data=True)
        assert not out.exists()

    def test_persist_and_query(self, scenario_dir, tmp_path):
        out = tmp_path / "out"
        result = load_data(scenario_dir, output_dir=out, output_format="all")

        assert len(result.artifacts) == 12
        assert {a.dataset for a in result.artifacts} == {"neuropsych", "neurocog", "neurobehav", "validity"}

        df = query("SELECT scale, z FROM neurobehav", out)
        assert df["scale"].tolist() == ["BASC Anxiety"]
        assert read_artifact(out / "validity.csv").empty


class TestPipelineBehaviour:
    def test_groups_and_lineage(self, score_dir):
        result = load_data(score_dir, return_data=True)
        neurocog = result.datasets["neurocog"]

        assert "source_filename" in neurocog.columns
        assert set(neurocog["source_filename"]) == {"wisc5.csv"}
        for key in ("domain", "subdomain", "narrow", "pass", "verbal", "timed"):
            assert f"z_mean_{key}" in neurocog.columns
            assert f"z_sd_{key}" in neurocog.columns

        neurobehav = result.datasets["neurobehav"]
        assert "z_mean_domain" in neurobehav.columns
        assert "z_mean_timed" not in neurobehav.columns
        assert "z_mean_domain" not in result.datasets["neuropsych"].columns

        validity = result.datasets["validity"]
        assert validity["scale"].tolist() == ["F Index"]
        assert pd.isna(validity["z"].iloc[0])

    def test_coerced_counts_reported(self, score_dir):
        result = load_data(score_dir, return_data=True)
        assert result.coerced_counts["score"] == 1
        assert result.schema.sources == ("basc3.csv", "wisc5.csv")

    def test_duplicates_across_files_removed_once(self, tmp_path):
        row = {"scale": "Coding", "percentile": 25, "test_type": "npsych_test", "domain": "Speed"}
        write_csv(tmp_path, "a.csv", [row])
        write_csv(tmp_path, "b.csv", [row])
        result = load_data(tmp_path, return_data=True)
        assert len(result.datasets["neuropsych"]) == 1
        assert len(result.datasets["neurocog"]) == 1

    def test_out_of_range_percentile_aborts(self, tmp_path):
        write_csv(tmp_path, "a.csv", [{"scale": "X", "percentile": 140, "test_type": "npsych_test"}])
        with pytest.raises(ValidationError):
            load_data(tmp_path, return_data=True)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(InputError):
            load_data(tmp_path / "missing", return_data=True)

    def test_rerun_overwrites(self, scenario_dir, tmp_path):
        out = tmp_path / "out"
        load_data(scenario_dir, output_dir=out, output_format="csv")
        (scenario_dir / "b.csv").unlink()
        load_data(scenario_dir, output_dir=out, output_format="csv")
        assert len(read_artifact(out / "neuropsych.csv")) == 1
        assert read_artifact(out / "neurobehav.csv").empty
