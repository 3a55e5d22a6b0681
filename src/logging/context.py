# src/logging/context.py — v1
"""Contextual logging support — attach request_id, operation, model to log records."""

from __future__ import annotations

import contextvars
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)
_model: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "model", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    operation: str | None = None
    model: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        operation=_operation.get(),
        model=_model.get(),
    )


def set_request_context(request_id: str) -> None:
    """Set request-level context (called once per gateway request)."""
    _request_id.set(request_id)


@contextmanager
def operation_context(operation: str, model: str | None = None) -> Iterator[None]:
    """Scope ``operation`` (and optionally ``model``) to the enclosed block."""
    op_token = _operation.set(operation)
    model_token = _model.set(model) if model is not None else None
    try:
        yield
    finally:
        _operation.reset(op_token)
        if model_token is not None:
            _model.reset(model_token)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _operation.set(None)
    _model.set(None)
