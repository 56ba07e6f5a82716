"""Unit tests for FastSlamConfig."""

import pytest

from rbslam.estimators import UnscentedParams
from rbslam.slam import FastSlamConfig


class TestFastSlamConfig:
    def test_defaults(self):
        config = FastSlamConfig()
        assert config.num_particles == 100
        assert config.resample_threshold == 0.75
        assert config.collapse_threshold == 0.5
        assert config.keep_history is True
        assert config.seed is None

    def test_unscented_params(self):
        config = FastSlamConfig(ukf_alpha=0.5, ukf_beta=1.0, ukf_kappa=2.0)
        assert config.unscented_params() == UnscentedParams(alpha=0.5, beta=1.0, kappa=2.0)

    def test_zero_particles_allowed(self):
        assert FastSlamConfig(num_particles=0).num_particles == 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"num_particles": -1},
            {"resample_threshold": 1.5},
            {"resample_threshold": -0.1},
            {"collapse_threshold": 2.0},
            {"ukf_alpha": 0.0},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            FastSlamConfig(**kwargs)
