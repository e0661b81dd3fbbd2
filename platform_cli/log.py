"""
Structured stderr logging for the platform API layer.

A logger is any callable ``log(level, message, **fields)``. The API layer
never prints directly; it calls whichever logger it was handed.
"""

import json
import sys

LEVELS = {"debug": 10, "info": 20, "warn": 30, "error": 40}


class StderrLog:
    """Emit ``[HTTP] {...}`` JSON lines to stderr at or above *level*."""

    def __init__(self, level="warn", stream=None):
        if level not in LEVELS:
            raise ValueError(f"unknown log level {level!r}")
        self.level = level
        self.stream = stream

    def enabled(self, level):
        return LEVELS[level] >= LEVELS[self.level]

    def __call__(self, level, message, **fields):
        if not self.enabled(level):
            return
        record = {"level": level, "msg": message, **fields}
        print(
            "[HTTP] " + json.dumps(record, ensure_ascii=False, sort_keys=True, default=str),
            file=self.stream or sys.stderr,
        )


def null_log(level, message, **fields):
    """Discard everything."""
