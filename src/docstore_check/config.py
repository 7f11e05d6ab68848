from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Mapping


@dataclass(frozen=True)
class Settings:
    """Immutable configuration for the adapter target and the check run."""

    target: str = "memory"
    url: str = "https://gdn1.macrometa.io"
    email: Optional[str] = None
    password: Optional[str] = None
    tenant: Optional[str] = None
    fabric: Optional[str] = None
    collection: str = "posts"
    timeout_s: float = 8.0
    verify_tls: bool = True
    startup_delay_s: float = 0.5
    check_timeout_s: Optional[float] = None
    expected_total: Optional[int] = None
    extended: bool = False
    extra_headers: Optional[Mapping[str, str]] = None
