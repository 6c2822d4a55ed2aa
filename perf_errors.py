"""Exceptions raised by the runtime render measurement."""

from __future__ import annotations


class RuntimePerfError(Exception):
    pass


class ParseError(RuntimePerfError, ValueError):
    def __init__(self, message: str, line: int | None = None, column: int | None = None):
        super().__init__(message)
        self.line = line
        self.column = column


class TransformError(RuntimePerfError, RuntimeError):
    pass


class MeasurementTimeoutError(RuntimePerfError, TimeoutError):
    pass
