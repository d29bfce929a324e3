#!/usr/bin/env python3
"""
Unit tests for configuration loading and log setup.

Tests cover:
- Defaults without a config file
- Reading, patching and saving a config file
- Building the descent rule and route settings from config
- Log handler installation
- Command line front end
"""

import logging
import pytest
import sys
import os

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from flightroute.descent import DescentConfig
from flightroute.logsetup import setuplogs
from flightroute.__main__ import main
from flightroute.route import Route
from flightroute.routeleg import RouteLeg
from flightroute.rtconfig import RTConfig, SectionParser
from flightroute.utils.geo import Pos


def write_conf(path, text):
    with open(path, 'w') as h:
        h.write(text)
    return str(path)


# =============================================================================
# Section parsing
# =============================================================================


class TestSectionParser:
    """Tests for SectionParser value detection."""

    def test_booleans(self):
        section = SectionParser(a="True", b="off", c="1", d="no")
        assert section.a is True
        assert section.b is False
        assert section.c is True
        assert section.d is False

    def test_other_text_kept(self):
        section = SectionParser(tod_rule="3.0", items="['a', 'b']")
        assert section.tod_rule == "3.0"
        assert section.items == "['a', 'b']"

    def test_string_and_none(self):
        section = SectionParser(name=" nm ", empty=None)
        assert section.name == "nm"
        assert section.empty == ""


# =============================================================================
# Config file
# =============================================================================


class TestRTConfig:
    """Tests for RTConfig."""

    def test_defaults_without_file(self, tmp_path):
        conf_file = tmp_path / "missing.conf"
        cfg = RTConfig(conf_file=str(conf_file))

        assert cfg.ready
        assert cfg.route.show_missed_approach is True
        assert cfg.descent.tod_rule == "3.0"
        assert cfg.descent.distance_unit == "nm"
        assert cfg.general.console_log_level == "INFO"
        # Defaults are not written unless asked to
        assert not conf_file.exists()

    def test_reads_file(self, tmp_path):
        conf_file = write_conf(tmp_path / "rt.conf",
                               "[route]\nshow_missed_approach = False\n\n"
                               "[descent]\ntod_rule = 4.5\ndistance_unit = km\naltitude_unit = m\n")
        cfg = RTConfig(conf_file=conf_file)

        assert cfg.route.show_missed_approach is False
        config = cfg.descent_config()
        assert config.tod_rule == 4.5
        assert config.distance_unit == "km"
        assert config.altitude_unit == "m"

    def test_invalid_value_patched(self, tmp_path, caplog):
        conf_file = write_conf(tmp_path / "rt.conf", "[descent]\ntod_rule = steep\n")
        with caplog.at_level(logging.WARNING, logger="flightroute.rtconfig"):
            cfg = RTConfig(conf_file=conf_file)

        assert cfg.descent.tod_rule == "3.0"
        assert "Invalid value" in caplog.text
        # Patched value is persisted
        with open(conf_file) as h:
            assert "tod_rule = 3.0" in h.read()

    def test_missing_sections_patched(self, tmp_path):
        conf_file = write_conf(tmp_path / "rt.conf", "[route]\nshow_missed_approach = off\n")
        cfg = RTConfig(conf_file=conf_file)

        assert cfg.route.show_missed_approach is False
        assert cfg.descent.tod_rule == "3.0"
        with open(conf_file) as h:
            assert "[descent]" in h.read()

    def test_invalid_descent_unit_falls_back(self, tmp_path, caplog):
        conf_file = write_conf(tmp_path / "rt.conf", "[descent]\ndistance_unit = parsec\n")
        cfg = RTConfig(conf_file=conf_file)

        with caplog.at_level(logging.ERROR, logger="flightroute.rtconfig"):
            config = cfg.descent_config()

        assert config == DescentConfig()
        assert "Invalid descent configuration" in caplog.text

    def test_save_round_trip(self, tmp_path):
        conf_file = tmp_path / "sub" / "rt.conf"
        cfg = RTConfig(conf_file=str(conf_file))
        cfg.route.show_missed_approach = False
        cfg.descent.tod_rule = 2.5
        cfg.save()

        assert conf_file.exists()
        reloaded = RTConfig(conf_file=str(conf_file))
        assert reloaded.route.show_missed_approach is False
        assert reloaded.descent_config().tod_rule == 2.5

    def test_apply_to_route(self, tmp_path):
        conf_file = write_conf(tmp_path / "rt.conf", "[route]\nshow_missed_approach = no\n")
        cfg = RTConfig(conf_file=conf_file)
        route = Route()
        assert route.show_missed_approach is True

        cfg.apply_to_route(route)
        assert route.show_missed_approach is False
        assert route.descent_config == DescentConfig()

    def test_route_from_config(self, tmp_path):
        conf_file = write_conf(tmp_path / "rt.conf",
                               "[route]\nshow_missed_approach = off\n\n"
                               "[descent]\ntod_rule = 4.0\n")
        cfg = RTConfig(conf_file=conf_file)
        legs = [RouteLeg("A", Pos(0.0, 0.0)), RouteLeg("B", Pos(1.0, 0.0))]
        route = Route.from_config(cfg, legs, cruise_altitude_ft=5000)

        assert route.show_missed_approach is False
        assert route.descent_config.tod_rule == 4.0
        # Config rule is used when no rule is passed
        assert route.get_top_of_descent_from_destination() == pytest.approx(20.0)
        assert route.get_top_of_descent_from_destination(DescentConfig()) == pytest.approx(15.0)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture
def restore_logging():
    """Put the root logger back the way pytest set it up."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogs:
    """Tests for setuplogs."""

    def test_creates_log_file(self, tmp_path, monkeypatch, restore_logging):
        monkeypatch.delenv("FLIGHTROUTE_DEBUG", raising=False)
        cfg = RTConfig(conf_file=str(tmp_path / "missing.conf"))
        cfg.general.log_file = str(tmp_path / "logs" / "flightroute.log")

        log_file = setuplogs(cfg)

        assert log_file == cfg.general.log_file
        assert os.path.isfile(log_file)
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        levels = {type(h).__name__: h.level for h in root.handlers}
        assert levels["RotatingFileHandler"] == logging.DEBUG
        assert levels["StreamHandler"] == logging.INFO

    def test_config_levels(self, tmp_path, monkeypatch, restore_logging):
        monkeypatch.delenv("FLIGHTROUTE_DEBUG", raising=False)
        cfg = RTConfig(conf_file=str(tmp_path / "missing.conf"))
        cfg.general.log_file = str(tmp_path / "flightroute.log")
        cfg.general.file_log_level = "warning"
        cfg.general.console_log_level = "ERROR"

        setuplogs(cfg)

        assert logging.getLogger().level == logging.WARNING

    def test_debug_environment_override(self, tmp_path, monkeypatch, restore_logging):
        monkeypatch.setenv("FLIGHTROUTE_DEBUG", "1")
        cfg = RTConfig(conf_file=str(tmp_path / "missing.conf"))
        cfg.general.log_file = str(tmp_path / "flightroute.log")
        cfg.general.console_log_level = "ERROR"

        setuplogs(cfg)

        levels = {type(h).__name__: h.level for h in logging.getLogger().handlers}
        assert levels["StreamHandler"] == logging.DEBUG


# =============================================================================
# Command line
# =============================================================================


ROUTE_ARGS = ["A:0,0", "B:0,1", "C:0,2", "D:0,3"]


@pytest.fixture
def conf_file(tmp_path):
    """Config file keeping the log file inside the test directory."""
    log_file = tmp_path / "logs" / "flightroute.log"
    return write_conf(tmp_path / "rt.conf", f"[general]\nlog_file = {log_file}\n")


class TestMain:
    """Tests for the command line front end."""

    def test_route_summary(self, conf_file, capsys, monkeypatch, restore_logging):
        monkeypatch.delenv("FLIGHTROUTE_DEBUG", raising=False)
        assert main(ROUTE_ARGS + ["-c", conf_file]) == 0

        out = capsys.readouterr().out
        assert "Route: 4 legs, 180.1 nm" in out
        assert "Active leg" not in out
        assert os.path.isfile(os.path.join(os.path.dirname(conf_file), "logs", "flightroute.log"))

    def test_position_on_route(self, conf_file, capsys, monkeypatch, restore_logging):
        monkeypatch.delenv("FLIGHTROUTE_DEBUG", raising=False)
        assert main(ROUTE_ARGS + ["--position", "0,1.5", "--course", "90", "-c", conf_file]) == 0

        out = capsys.readouterr().out
        assert "Active leg: 2 (C)" in out
        assert "From start: 90.1 nm" in out
        assert "To destination: 90.1 nm" in out
        assert "To next waypoint: 30.0 nm" in out

    def test_position_off_route(self, conf_file, capsys, monkeypatch, restore_logging):
        monkeypatch.delenv("FLIGHTROUTE_DEBUG", raising=False)
        assert main(ROUTE_ARGS + ["--position", "10,1.5", "-c", conf_file]) == 1
        assert "Position is not near the route" in capsys.readouterr().out

    def test_top_of_descent(self, conf_file, capsys, monkeypatch, restore_logging):
        monkeypatch.delenv("FLIGHTROUTE_DEBUG", raising=False)
        assert main(ROUTE_ARGS + ["--cruise", "6000", "-c", conf_file]) == 0
        assert "18.0 nm before destination" in capsys.readouterr().out

    @pytest.mark.parametrize("waypoint", ["A0,0", ":0,0", "A:0", "A:north,0", "A:0,200"])
    def test_bad_waypoint(self, waypoint, conf_file, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["B:0,1", waypoint, "-c", conf_file])
        assert excinfo.value.code == 2
        assert "argument waypoints" in capsys.readouterr().err
