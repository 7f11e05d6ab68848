from __future__ import annotations
from typing import Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text
from .models import FailureKind, Section, Severity


class Reporter:
    def __init__(self, console: Console) -> None:
        self.console = console

    def section(self, section: Section) -> None:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Status", width=8)
        table.add_column("Rule", style="bold")
        table.add_column("Message")
        for r in section.results:
            if r.ok:
                status = "✅"
            elif r.kind == FailureKind.TIMEOUT:
                status = "⏱"
            elif r.severity == Severity.WARN:
                status = "⚠️"
            else:
                status = "❌"
            table.add_row(status, Text(r.rule), Text(r.message))
        panel_title = Text(section.title, style="bold blue")
        self.console.print(Panel.fit(table, title=panel_title))

    def total(self, passed: int, failed: int, expected: Optional[int] = None) -> None:
        count = passed + failed
        table = Table(show_header=True, header_style="bold")
        table.add_column("PASSED")
        table.add_column("FAILED")
        table.add_column("COUNT")
        table.add_column("EXPECTED")
        table.add_row(str(passed), str(failed), str(count), "-" if expected is None else str(expected))
        if failed > 0:
            style = "bold red"
        elif expected is not None and expected != count:
            style = "bold yellow"
        else:
            style = "bold green"
        self.console.print(Panel.fit(table, title=Text("Summary", style=style)))
        if expected is not None and expected != count:
            self.console.print(
                f"[yellow]Expected {expected} assertions but {count} were recorded[/yellow]"
            )
