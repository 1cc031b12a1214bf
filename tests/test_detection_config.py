"""
Tests for HarmonicConfig defaults, validation, serialization and builders.
"""

from datetime import timedelta

import pytest

from src.harmonic_analysis.detection_config import HarmonicConfig, MatchStrategy


class TestDefaults:

    def test_default_values(self):
        config = HarmonicConfig.default()
        assert config.pivot_lookback == 1
        assert config.max_pattern_bars == 50
        assert config.price_tolerance == 0.015
        assert config.closing_leg_tolerance == 0.05
        assert config.pattern_visibility_horizon == timedelta(days=5)
        assert config.pivot_store_capacity == 100
        assert config.match_strategy is MatchStrategy.DIRECT
        assert config.quantize_to_tick

    def test_window_size(self):
        assert HarmonicConfig(pivot_lookback=3).window_size == 7

    def test_expiry_enabled(self):
        assert HarmonicConfig.default().expiry_enabled
        assert not HarmonicConfig(pattern_visibility_horizon=timedelta(0)).expiry_enabled

    def test_frozen(self):
        config = HarmonicConfig.default()
        with pytest.raises(AttributeError):
            config.pivot_lookback = 2


class TestValidation:

    @pytest.mark.parametrize("lookback", [0, 6, -1])
    def test_lookback_bounds(self, lookback):
        with pytest.raises(ValueError, match="pivot_lookback"):
            HarmonicConfig(pivot_lookback=lookback)

    @pytest.mark.parametrize("field,value", [
        ("max_pattern_bars", 0),
        ("price_tolerance", 0),
        ("closing_leg_tolerance", -0.1),
        ("pivot_store_capacity", 0),
        ("duplicate_tick_multiple", -1.0),
        ("duplicate_price_pct", -0.001),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValueError):
            HarmonicConfig(**{field: value})

    def test_strategy_must_be_enum(self):
        with pytest.raises(ValueError):
            HarmonicConfig(match_strategy="direct")


class TestSerialization:

    def test_to_dict(self):
        data = HarmonicConfig.default().to_dict()
        assert data["pattern_visibility_horizon"] == 5 * 86400
        assert data["match_strategy"] == "direct"
        assert data["pivot_lookback"] == 1

    def test_round_trip(self):
        config = HarmonicConfig(
            pivot_lookback=2,
            match_strategy=MatchStrategy.PROJECTED,
            pattern_visibility_horizon=timedelta(hours=12),
        )
        assert HarmonicConfig.from_dict(config.to_dict()) == config

    def test_from_dict_visibility_days(self):
        config = HarmonicConfig.from_dict({"pattern_visibility_days": 2})
        assert config.pattern_visibility_horizon == timedelta(days=2)

    def test_from_dict_empty_gives_defaults(self):
        assert HarmonicConfig.from_dict({}) == HarmonicConfig.default()

    def test_from_dict_unknown_strategy(self):
        with pytest.raises(ValueError):
            HarmonicConfig.from_dict({"match_strategy": "fuzzy"})


class TestBuilders:

    def test_with_strategy(self):
        config = HarmonicConfig(pivot_lookback=3).with_strategy(MatchStrategy.PROJECTED)
        assert config.match_strategy is MatchStrategy.PROJECTED
        assert config.pivot_lookback == 3

    def test_with_tolerances_partial(self):
        config = HarmonicConfig.default().with_tolerances(closing_leg_tolerance=0.02)
        assert config.closing_leg_tolerance == 0.02
        assert config.price_tolerance == 0.015

    def test_with_pivots(self):
        config = HarmonicConfig.default().with_pivots(pivot_lookback=2, pivot_store_capacity=40)
        assert config.pivot_lookback == 2
        assert config.pivot_store_capacity == 40
        assert config.max_pattern_bars == 50

    def test_with_pivots_validates(self):
        with pytest.raises(ValueError):
            HarmonicConfig.default().with_pivots(pivot_lookback=9)

    def test_with_visibility_horizon(self):
        config = HarmonicConfig.default().with_visibility_horizon(timedelta(0))
        assert not config.expiry_enabled
        assert config.match_strategy is MatchStrategy.DIRECT
