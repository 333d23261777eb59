"""Tests for analysis configuration"""

import pytest

from netimpact.config import AnalysisConfig
from netimpact.config.constants import DEFAULT_BATCH_SIZE


class TestAnalysisConfig:
    """Tests for AnalysisConfig"""

    def test_defaults(self):
        """Test default values"""
        config = AnalysisConfig()
        assert config.batch_size == DEFAULT_BATCH_SIZE
        assert config.congestion_threshold == 0.8
        assert config.underutilized_threshold == 0.2

    def test_from_env(self):
        """Test environment overrides are cast to the field type"""
        config = AnalysisConfig.from_env({
            "NETIMPACT_BATCH_SIZE": "7",
            "NETIMPACT_SPF_DELAY_SECONDS": "2.5",
            "NETIMPACT_MAX_SPOFS": "",
        })
        assert config.batch_size == 7
        assert config.spf_delay_seconds == 2.5
        assert config.max_spofs == AnalysisConfig().max_spofs

    def test_from_env_invalid(self):
        """Test a non-numeric override is rejected with its variable name"""
        with pytest.raises(ValueError, match="NETIMPACT_BATCH_SIZE"):
            AnalysisConfig.from_env({"NETIMPACT_BATCH_SIZE": "many"})

    def test_from_process_env(self, monkeypatch):
        """Test os.environ is read by default"""
        monkeypatch.setenv("NETIMPACT_MAX_ECMP_PATHS", "4")
        assert AnalysisConfig.from_env().max_ecmp_paths == 4

    @pytest.mark.parametrize("kwargs", [
        {"batch_size": 0},
        {"max_ecmp_paths": 0},
        {"default_capacity_mbps": 0},
    ])
    def test_invalid_values(self, kwargs):
        """Test out-of-range settings"""
        with pytest.raises(ValueError):
            AnalysisConfig(**kwargs)

    def test_to_dict(self):
        """Test serialization covers every field"""
        data = AnalysisConfig().to_dict()
        assert data["batch_size"] == DEFAULT_BATCH_SIZE
        assert len(data) == 11
