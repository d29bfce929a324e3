#!/usr/bin/env python3
"""
Configuration file for route tracking.

Settings live in an INI file (default ~/.flightroute) read with configparser
on top of the built-in defaults below. Every section becomes an attribute
holding the parsed values:

    cfg = RTConfig()
    cfg.route.show_missed_approach    # bool
    cfg.descent.tod_rule              # str, converted by descent_config()

    route = Route.from_config(cfg, legs, cruise_altitude_ft=35000)

Missing or malformed values are replaced with their defaults. If the file
exists it is rewritten with the repaired values.
"""

import os
import configparser

from flightroute.descent import DescentConfig

import logging
log = logging.getLogger(__name__)

DEFAULT_CONF_FILE = os.path.join(os.path.expanduser("~"), ".flightroute")

TRUE_VALUES = ('true', '1', 'yes', 'on')
FALSE_VALUES = ('false', '0', 'no', 'off')


def _is_bool(value: str) -> bool:
    return value.lower() in TRUE_VALUES + FALSE_VALUES


def _is_number(value: str) -> bool:
    try:
        float(value)
    except ValueError:
        return False
    return True


class SectionParser(object):
    """Attribute access to one config section. Boolean words become bool."""

    def __init__(self, /, **kwargs):
        for key, value in kwargs.items():
            text = '' if value is None else str(value).strip()
            if _is_bool(text):
                self.__dict__[key] = text.lower() in TRUE_VALUES
            else:
                self.__dict__[key] = text

    def __repr__(self):
        items = (f"{k}={v!r}" for k, v in self.__dict__.items())
        return "{}({})".format(type(self).__name__, ", ".join(items))


class RTConfig(object):

    _defaults = f"""
[general]
# Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
console_log_level = INFO
# File log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
file_log_level = DEBUG
# Log file location
log_file = {os.path.join(os.path.expanduser("~"), ".flightroute-data", "logs", "flightroute.log")}

[route]
# Follow the aircraft onto missed approach legs. When disabled the active leg
# stays on the last approach leg, matching a display that hides the missed approach.
show_missed_approach = True

[descent]
# Top of descent rule, distance needed per 1000 altitude units of descent.
# Example 3.0 with nm and ft means 3 nm per 1000 ft
tod_rule = 3.0
# Distance unit of the rule (nm, km or mi)
distance_unit = nm
# Altitude unit of the rule (ft or m)
altitude_unit = ft
"""

    def __init__(self, conf_file=None):
        self.conf_file = conf_file or DEFAULT_CONF_FILE
        self.config = self._new_parser()
        self.ready = self.load()

    @staticmethod
    def _new_parser():
        # Comment lines are kept as value-less options so they survive a save
        return configparser.ConfigParser(strict=False, allow_no_value=True, comment_prefixes='/')

    def load(self):
        self.config.read_string(self._defaults)
        if os.path.isfile(self.conf_file):
            log.info(f"Config file found {self.conf_file} reading...")
            self.config.read(self.conf_file)
        else:
            log.info("No config file found. Using defaults...")

        self.get_config()
        return True

    @staticmethod
    def _matches_default(value, default):
        """Check that a value has the kind of the default (bool, number or text)."""
        value = '' if value is None else str(value).strip()
        default = '' if default is None else str(default).strip()

        if not default:
            return True
        if _is_bool(default):
            return _is_bool(value)
        if _is_number(default):
            return _is_number(value)
        return value != ''

    def _repair(self):
        """
        Fill in missing or malformed values from the defaults.

        Returns:
            True if anything was changed
        """
        defaults = self._new_parser()
        defaults.read_string(self._defaults)
        repaired = False

        for sect in defaults.sections():
            if not self.config.has_section(sect):
                self.config.add_section(sect)
                repaired = True

            for key, default in defaults.items(sect):
                if key.startswith('#'):
                    if not self.config.has_option(sect, key):
                        self.config.set(sect, key, None)
                        repaired = True
                    continue

                value = self.config.get(sect, key, fallback=None)
                if value is not None and value.strip() and self._matches_default(value, default):
                    continue

                if value is not None and value.strip():
                    log.warning(f"Invalid value {value!r} for [{sect}] {key}, using default {default!r}")
                self.config.set(sect, key, default)
                repaired = True

        return repaired

    def get_config(self):
        # Pull info from ConfigParser object into RTConfig
        repaired = self._repair()

        for sect in self.config.sections():
            setattr(self, sect, SectionParser(**dict(self.config.items(sect))))

        if repaired and os.path.isfile(self.conf_file):
            # Persist repaired values so next run is stable
            try:
                self.save()
            except OSError as e:
                log.error(f"Failed to persist repaired config: {e}")

    def save(self):
        log.info("Saving config ... ")
        self.set_config()

        conf_dir = os.path.dirname(self.conf_file)
        if conf_dir and not os.path.isdir(conf_dir):
            os.makedirs(conf_dir)

        with open(self.conf_file, 'w') as h:
            self.config.write(h)
        log.info(f"Wrote config file: {self.conf_file}")

    def set_config(self):
        # Push info from RTConfig into ConfigParser object
        for sect in self.config.sections():
            section = getattr(self, sect, None)
            if section is None:
                continue
            for k, v in section.__dict__.items():
                if not k.startswith('#'):
                    self.config[sect][k] = str(v)

    def descent_config(self):
        """Build the top of descent rule from the [descent] section."""
        try:
            return DescentConfig(
                tod_rule=self.descent.tod_rule,
                distance_unit=self.descent.distance_unit,
                altitude_unit=self.descent.altitude_unit,
            )
        except ValueError as e:
            log.error(f"Invalid descent configuration, using defaults: {e}")
            return DescentConfig()

    def apply_to_route(self, route):
        """Push the [route] and [descent] settings into a Route."""
        route.show_missed_approach = bool(self.route.show_missed_approach)
        route.descent_config = self.descent_config()
