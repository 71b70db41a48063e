"""Tests for neuropsych_data.core.zscore."""

import math

import numpy as np
import pandas as pd
import pytest

from neuropsych_data.core.errors import ValidationError
from neuropsych_data.core.zscore import percentile_to_z, percentiles_to_z


class TestPercentileToZ:
    def test_median_is_exactly_zero(self):
        assert percentile_to_z(50) == 0.0
        assert percentile_to_z(50.0) == 0.0

    def test_sign_follows_median(self):
        assert percentile_to_z(16) < 0
        assert percentile_to_z(84) > 0

    def test_known_values(self):
        assert percentile_to_z(84) == pytest.approx(0.9945, abs=1e-3)
        assert percentile_to_z(2.5) == pytest.approx(-1.96, abs=1e-2)

    def test_monotonic_over_open_range(self):
        ps = np.linspace(0.01, 99.99, 2000)
        zs = [percentile_to_z(p) for p in ps]
        assert all(b >= a for a, b in zip(zs, zs[1:]))

    def test_zero_is_treated_as_half_percentile(self):
        z0 = percentile_to_z(0)
        assert math.isfinite(z0)
        assert z0 == percentile_to_z(0.5)

    def test_hundred_is_symmetric_with_zero(self):
        z100 = percentile_to_z(100)
        assert math.isfinite(z100)
        assert z100 == percentile_to_z(99.5)
        assert z100 == pytest.approx(-percentile_to_z(0))

    def test_monotonic_including_boundaries(self):
        ps = [0, 0.1, 0.5, 1, 50, 99, 99.9, 100]
        zs = [percentile_to_z(p) for p in ps]
        assert all(b >= a for a, b in zip(zs, zs[1:]))

    @pytest.mark.parametrize("missing", [None, float("nan"), pd.NA])
    def test_missing_gives_none(self, missing):
        assert percentile_to_z(missing) is None

    @pytest.mark.parametrize("bad", [-0.1, 100.01, 250])
    def test_out_of_range_raises(self, bad):
        with pytest.raises(ValidationError):
            percentile_to_z(bad)

    def test_non_numeric_raises(self):
        with pytest.raises(ValidationError):
            percentile_to_z("high")


class TestPercentilesToZ:
    def test_matches_scalar_version(self):
        s = pd.Series([0, 16, 50, 84, 100, None], index=list("abcdef"))
        z = percentiles_to_z(s)
        assert list(z.index) == list("abcdef")
        for p, value in zip(s.iloc[:5], z.iloc[:5]):
            assert value == pytest.approx(percentile_to_z(p))
        assert z.loc["c"] == 0.0
        assert pd.isna(z.loc["f"])

    def test_out_of_range_raises_with_values(self):
        with pytest.raises(ValidationError, match="101"):
            percentiles_to_z(pd.Series([50, 101]))
