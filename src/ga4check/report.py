"""
Result aggregation: console summary table, exit code and JSON export.
"""
import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .automation.types import CheckResult, Verdict

logger = logging.getLogger("ga4check")

VERDICT_STYLES = {
    Verdict.PASS: "green",
    Verdict.SKIPPED: "dim",
    Verdict.MISMATCH: "yellow",
    Verdict.TIMEOUT: "red",
    Verdict.MISSING_ERRORS: "red",
    Verdict.UNEXPECTED_OUTCOME: "red",
    Verdict.INTERACTION_ERROR: "red",
    Verdict.CONFIG_ERROR: "magenta",
}


class Reporter:
    def __init__(self, url: str = "", console: Optional[Console] = None):
        self.url = url
        self.console = console or Console()
        self.results: List[CheckResult] = []
        self.meta: Dict[str, Any] = {}

    def add(self, result: CheckResult) -> None:
        self.results.append(result)

    def extend(self, results: List[CheckResult]) -> None:
        self.results.extend(results)

    def counts(self) -> Dict[str, int]:
        counter = Counter(r.verdict.value for r in self.results)
        return {verdict.value: counter.get(verdict.value, 0) for verdict in Verdict}

    @property
    def failed(self) -> List[CheckResult]:
        return [r for r in self.results if not r.passed]

    def exit_code(self) -> int:
        """0 only if every executed check passed or was skipped."""
        return 1 if self.failed else 0

    def print_summary(self) -> None:
        if not self.results:
            self.console.print("[yellow]No checks were run.[/]")
            return

        table = Table(show_header=True, header_style="bold magenta", title=self.url or None)
        table.add_column("Check")
        table.add_column("Verdict")
        table.add_column("Time", style="dim", justify="right")
        table.add_column("Details")

        for result in self.results:
            style = VERDICT_STYLES.get(result.verdict, "white")
            details = escape(result.message)
            if result.details.get("auto_detected"):
                details = f"[yellow](auto-detected)[/] {details}".rstrip()
            table.add_row(
                escape(result.name),
                f"[{style}]{result.verdict.value}[/]",
                f"{result.elapsed_ms}ms" if result.elapsed_ms is not None else "",
                details,
            )
        self.console.print(table)

        counts = self.counts()
        passed = counts[Verdict.PASS.value]
        skipped = counts[Verdict.SKIPPED.value]
        failed = len(self.failed)
        self.console.print(
            f"[bold]Summary:[/] {len(self.results)} checks, "
            f"[green]{passed} passed[/], [red]{failed} failed[/], [dim]{skipped} skipped[/]"
        )
        if failed:
            self.console.print(f"[red]✗[/] {failed} check(s) failed")
        else:
            self.console.print("[green]✓[/] All checks passed")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'generated_at': datetime.now().isoformat(),
            'meta': self.meta,
            'summary': self.counts(),
            'exit_code': self.exit_code(),
            'results': [r.to_dict() for r in self.results],
        }

    def write_json(self, path: str) -> Path:
        target = Path(path)
        if target.parent and not target.parent.exists():
            target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)
        logger.info(f"[report] JSON report written: {target}")
        return target
