from __future__ import annotations
import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console

from .adapters.base import DocumentAdapter
from .adapters.fabric import FabricAdapter
from .adapters.memory import MemoryAdapter
from .config import Settings
from .reporter import Reporter
from .service import StoreService
from .suites.crud import CrudSuite

app = typer.Typer(add_completion=False, no_args_is_help=True)

log = logging.getLogger("docstore.cli")

TARGETS = ("memory", "fabric")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # Request lines from httpx are noise next to the check output.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _settings(
    target: str,
    url: str,
    email: Optional[str],
    password: Optional[str],
    tenant: Optional[str],
    fabric: Optional[str],
    collection: str,
    timeout: float,
    insecure: bool,
    delay: float,
    check_timeout: Optional[float],
    expected: Optional[int],
    extended: bool,
) -> Settings:
    return Settings(
        target=target,
        url=url,
        email=email,
        password=password,
        tenant=tenant,
        fabric=fabric,
        collection=collection,
        timeout_s=timeout,
        verify_tls=not insecure,
        startup_delay_s=delay,
        check_timeout_s=check_timeout,
        expected_total=expected,
        extended=extended,
    )


def _adapter(settings: Settings) -> DocumentAdapter:
    if settings.target == "memory":
        return MemoryAdapter(settings.collection)
    if settings.target == "fabric":
        return FabricAdapter(settings)
    raise typer.BadParameter(f"unknown target {settings.target!r}, expected one of {', '.join(TARGETS)}")


@app.callback()
def main() -> None:
    pass


@app.command("run")
def run(
    target: str = typer.Option("memory", "--target", help="memory | fabric"),
    url: str = typer.Option("https://gdn1.macrometa.io", "--url", help="Hosted store URL (fabric target)"),
    email: Optional[str] = typer.Option(None, "--email", envvar="FABRIC_EMAIL"),
    password: Optional[str] = typer.Option(None, "--password", envvar="FABRIC_PASS"),
    tenant: Optional[str] = typer.Option(None, "--tenant"),
    fabric: Optional[str] = typer.Option(None, "--fabric"),
    collection: str = typer.Option("posts", "--collection"),
    timeout: float = typer.Option(8.0, "--timeout", help="HTTP timeout in seconds"),
    insecure: bool = typer.Option(False, "--insecure"),
    delay: float = typer.Option(0.5, "--delay", help="Seconds to wait after the service started"),
    check_timeout: Optional[float] = typer.Option(None, "--check-timeout", help="Per-check timeout in seconds"),
    expected: Optional[int] = typer.Option(None, "--expected", help="Expected number of assertions"),
    extended: bool = typer.Option(False, "--extended", help="Also run query, update and bulk checks"),
    log_level: str = typer.Option("INFO", "--log-level"),
):
    _configure_logging(log_level)
    console = Console()
    reporter = Reporter(console)
    settings = _settings(
        target, url, email, password, tenant, fabric, collection,
        timeout, insecure, delay, check_timeout, expected, extended,
    )
    adapter = _adapter(settings)
    suite = CrudSuite(settings)
    try:
        checker = asyncio.run(suite.run(adapter, reporter=reporter))
    except Exception as e:
        log.error("Service failed to start: %s", e)
        console.print(f"[bold red]Service failed to start:[/bold red] {e}")
        raise typer.Exit(code=2)
    checker.print_total()
    code = 0 if checker.ok else 1
    console.print(f"[bold]Summary:[/bold] PASSED {checker.passed} • FAILED {checker.failed} → exit {code}")
    raise typer.Exit(code=code)


@app.command("list")
def list_checks(
    extended: bool = typer.Option(False, "--extended", help="Include query, update and bulk checks"),
):
    console = Console()
    settings = Settings(extended=extended)
    suite = CrudSuite(settings)
    checker = suite.build(StoreService("posts", MemoryAdapter(settings.collection)))
    for i, entry in enumerate(checker.entries, start=1):
        console.print(f"{i:>3}. {entry.name}")
    console.print(f"[bold]{len(checker.entries)} checks, {suite.expected_total()} assertions[/bold]")
