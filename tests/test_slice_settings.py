"""Tests for slice options and runtime settings."""

import pytest
from pydantic import ValidationError

from py_slicer.config.config import Settings
from py_slicer.config.slice_settings import PivotCorrect, RatioFilter, SliceOptions


class TestSliceOptions:
    """Test the post-processing strategy variant."""

    def test_defaults(self):
        options = SliceOptions()

        assert options.alpha_threshold == 8
        assert options.include_outline is True
        assert isinstance(options.strategy, PivotCorrect)

    def test_from_flags(self):
        """The boolean flag form maps onto exactly one strategy."""
        pivot = SliceOptions.from_flags(recenter_pivot_to_opaque=True, min_opaque_ratio=0.5)
        ratio = SliceOptions.from_flags(recenter_pivot_to_opaque=False, min_opaque_ratio=0.3,
                                        alpha_threshold=20)

        assert isinstance(pivot.strategy, PivotCorrect)
        assert isinstance(ratio.strategy, RatioFilter)
        assert ratio.strategy.min_opaque_ratio == 0.3
        assert ratio.alpha_threshold == 20

    def test_discriminated_parsing(self):
        options = SliceOptions.model_validate(
            {"strategy": {"mode": "ratio", "min_opaque_ratio": 0.25}}
        )

        assert isinstance(options.strategy, RatioFilter)
        assert options.strategy.min_opaque_ratio == 0.25

    @pytest.mark.parametrize("payload", [
        {"strategy": {"mode": "random"}},
        {"strategy": {"mode": "ratio", "min_opaque_ratio": 1.5}},
        {"alpha_threshold": 256},
        {"alpha_threshold": -1},
    ])
    def test_invalid_values(self, payload):
        with pytest.raises(ValidationError):
            SliceOptions.model_validate(payload)


class TestSettings:
    """Test environment-driven settings."""

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SLICER_MAX_PIECES", "50")
        monkeypatch.setenv("SLICER_ALLOWED_ORIGINS", "http://a.test, http://b.test")

        settings = Settings()

        assert settings.max_pieces == 50
        assert settings.cors_origins == ["http://a.test", "http://b.test"]
