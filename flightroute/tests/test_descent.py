#!/usr/bin/env python3
"""
Unit tests for the descent rule.
"""

import pytest
import sys
import os

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from flightroute.descent import DescentConfig, top_of_descent_from_destination


class TestDescentConfig:
    """Tests for DescentConfig validation."""

    def test_defaults(self):
        config = DescentConfig()
        assert config.tod_rule == 3.0
        assert config.distance_unit == "nm"
        assert config.altitude_unit == "ft"
        assert config.nm_per_1000ft == pytest.approx(3.0)

    def test_string_values_normalized(self):
        """Values read from a config file arrive as strings."""
        config = DescentConfig(tod_rule="3.5", distance_unit=" NM ", altitude_unit="FT")
        assert config.tod_rule == 3.5
        assert config.distance_unit == "nm"
        assert config.altitude_unit == "ft"

    def test_metric_rule(self):
        config = DescentConfig(tod_rule=5.0, distance_unit="km", altitude_unit="m")
        # 5 km per 1000 m is 2.7 nm per 1000 m, or 0.82 nm per 1000 ft
        assert config.nm_per_1000ft == pytest.approx(5000.0 / 1852.0 * 0.3048)

    def test_statute_miles(self):
        config = DescentConfig(tod_rule=3.0, distance_unit="mi")
        assert config.nm_per_1000ft == pytest.approx(3.0 * 1609.344 / 1852.0)

    @pytest.mark.parametrize("rule", [0.0, -1.0])
    def test_non_positive_rule(self, rule):
        with pytest.raises(ValueError):
            DescentConfig(tod_rule=rule)

    def test_unknown_distance_unit(self):
        with pytest.raises(ValueError):
            DescentConfig(distance_unit="parsec")

    def test_unknown_altitude_unit(self):
        with pytest.raises(ValueError):
            DescentConfig(altitude_unit="fl")

    def test_rule_not_a_number(self):
        with pytest.raises(ValueError):
            DescentConfig(tod_rule="steep")


class TestTopOfDescentFromDestination:
    """Tests for top_of_descent_from_destination."""

    def test_three_nm_per_1000ft(self):
        dist = top_of_descent_from_destination(35000, 433, DescentConfig())
        assert dist == pytest.approx((35000 - 433) / 1000.0 * 3.0)

    def test_destination_at_cruise(self):
        assert top_of_descent_from_destination(5000, 5000, DescentConfig()) == pytest.approx(0.0)

    def test_destination_above_cruise(self):
        assert top_of_descent_from_destination(5000, 6000, DescentConfig()) < 0.0
