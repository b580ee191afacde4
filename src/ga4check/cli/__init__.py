"""
ga4check CLI helpers: settings resolution, browser sessions and tables.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from ..automation.errors import ConfigurationError
from ..automation.sites.base_site import SiteProfile
from ..automation.types import CapturedEvent
from ..config.loader import build_settings, load_site
from ..config.models import FormConfig
from ..config.settings import Settings

logger = logging.getLogger("ga4check")

# Create console for rich output
console = Console()

CATEGORIES = ("page_view", "scroll", "click", "exit_modal", "forms")


class Ga4CheckCLI:
    """Shared state for the ga4check commands."""

    def __init__(self, debug: bool = False):
        self.debug = debug
        if debug:
            logging.getLogger().setLevel(logging.DEBUG)
            logger.debug("Debug mode enabled")

    def _progress_spinner(self, description: str) -> Progress:
        """Create a transient spinner; the caller adds its task."""
        progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True
        )
        progress.add_task(description, total=None)
        return progress

    def cli_overrides(
        self,
        headless: Optional[bool] = None,
        viewport_width: Optional[int] = None,
        viewport_height: Optional[int] = None,
        only: Sequence[str] = (),
    ) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}
        if headless is not None:
            overrides["headless"] = headless
        if viewport_width:
            overrides["viewport_width"] = viewport_width
        if viewport_height:
            overrides["viewport_height"] = viewport_height
        if only:
            overrides["categories"] = {category: category in only for category in CATEGORIES}
        return overrides

    def resolve(self, url: str, overrides: Optional[Dict[str, Any]] = None) -> Tuple[SiteProfile, Settings]:
        """Site profile for the URL's domain and its fully merged settings."""
        if not url.startswith(("http://", "https://")):
            raise click.UsageError(f"URL must start with http:// or https://: {url}")
        try:
            site = load_site(url)
            settings = build_settings(site, overrides)
        except ConfigurationError as e:
            raise click.ClickException(f"Invalid configuration: {e}")
        return site, settings

    def start_engine(self, engine, settings: Settings) -> None:
        with self._progress_spinner("Starting browser..."):
            engine.start(
                headless=settings.headless,
                viewport={"width": settings.viewport_width, "height": settings.viewport_height},
                user_agent=settings.user_agent,
            )


def print_form_table(forms: List[FormConfig]) -> None:
    """Print a table of form configs."""
    if not forms:
        console.print("[yellow]No form configs found.[/]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Name")
    table.add_column("Page", style="dim")
    table.add_column("Form selector")
    table.add_column("Fields", justify="right")
    table.add_column("Scenarios")
    table.add_column("Form code", style="dim")

    for form in forms:
        scenarios = [s.name for s in form.builtin_scenarios()] + list(form.scenarios)
        table.add_row(
            form.name,
            form.page or "any",
            escape(form.form_selector),
            str(len(form.fields)),
            ", ".join(scenarios),
            form.form_code or "",
        )

    console.print(table)


def print_event_table(events: List[CapturedEvent]) -> None:
    """Print a table of captured GA4 events."""
    if not events:
        console.print("[yellow]No GA4 events captured.[/]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Time", style="dim")
    table.add_column("Event")
    table.add_column("Category")
    table.add_column("Action")
    table.add_column("Label")

    start = events[0].timestamp
    for event in events:
        table.add_row(
            f"+{event.timestamp - start}ms",
            event.name,
            event.get("eventCategory") or "",
            event.get("eventAction") or "",
            escape(event.get("eventLabel") or ""),
        )

    console.print(table)
