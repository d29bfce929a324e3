#!/usr/bin/env python3

import os
import sys
import logging
import logging.handlers

LOG_MAX_BYTES = 10485760
LOG_BACKUPS = 5

FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def _level(name, default):
    level = logging.getLevelName(str(name).strip().upper())
    return level if isinstance(level, int) else default


def setuplogs(cfg):
    """
    Route log records to a rotating file and the console.

    The [general] section of an RTConfig gives the log file and one level
    per handler. FLIGHTROUTE_DEBUG in the environment forces both to DEBUG.

    Returns:
        Path of the log file
    """
    general = cfg.general
    log_file = general.log_file
    os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)

    if os.environ.get('FLIGHTROUTE_DEBUG'):
        file_level = console_level = logging.DEBUG
    else:
        file_level = _level(general.file_log_level, logging.DEBUG)
        console_level = _level(general.console_log_level, logging.INFO)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_file, maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS)
    file_handler.setLevel(file_level)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
    handlers = [file_handler]

    # No console when running without a stdout (pythonw, services)
    if sys.stdout is not None:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(console_level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
        handlers.append(console_handler)

    # Root passes everything either handler wants
    logging.basicConfig(level=min(file_level, console_level), handlers=handlers, force=True)

    log = logging.getLogger(__name__)
    log.info(f"Logging to {log_file}, file level {logging.getLevelName(file_level)}, "
             f"console level {logging.getLevelName(console_level)}")
    return log_file
