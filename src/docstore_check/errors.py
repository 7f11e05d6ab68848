from __future__ import annotations
from typing import Any, Optional


class AdapterError(RuntimeError):
    """Raised by document adapters when an operation cannot be completed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class QueryError(AdapterError, ValueError):
    """Raised for find parameters or query operators that cannot be handled."""
