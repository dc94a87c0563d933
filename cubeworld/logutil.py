import logging
import os
import threading

from cubeworld import config

_tick_id = None

LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def set_tick(tick_id):
    """Tag subsequent log lines with the edit sequence number (None clears it)."""
    global _tick_id
    _tick_id = tick_id


def get_logger(scope):
    return logging.getLogger(f"cubeworld.{scope.lower()}")


def log(scope, msg, level="INFO"):
    if scope == "MESH" and level == "DEBUG" and not getattr(config, "MESH_LOG", False):
        return
    thread = threading.current_thread().name
    tick = _tick_id
    tick_tag = f" t{tick}" if tick is not None else ""
    text = f"[{level}{tick_tag} thr{thread} {scope}] {msg}"
    use_color = getattr(config, "LOG_COLOR", True) and os.getenv("NO_COLOR") is None
    if use_color and thread != "MainThread":
        # Generation worker thread.
        text = f"\x1b[32m{text}\x1b[0m"
    get_logger(scope).log(LEVELS.get(level, logging.INFO), text)
