from __future__ import annotations
from typing import Optional
from urllib.parse import quote, urlparse


def ensure_scheme(u: str) -> str:
    """Ensure an explicit scheme is present."""
    return u if "://" in u else f"https://{u}"


def build_origin(u: str) -> str:
    """Return scheme://host[:port] for a given input."""
    p = urlparse(ensure_scheme(u))
    scheme = p.scheme or "https"
    netloc = p.netloc or p.path.split("/")[0]
    return f"{scheme}://{netloc}"


def api_base(url: str, tenant: Optional[str], fabric: Optional[str]) -> str:
    """Resolve the REST API base for a tenant/fabric pair."""
    origin = build_origin(url)
    prefix = f"/_tenant/{quote(tenant, safe='')}" if tenant else ""
    fab = quote(fabric or "_system", safe="")
    return f"{origin}{prefix}/_fabric/{fab}/_api"


def mask_secret(tok: Optional[str]) -> str:
    if not tok:
        return "-"
    t = tok.strip()
    if len(t) <= 8:
        return "***"
    return f"{t[:4]}…{t[-4:]}"
