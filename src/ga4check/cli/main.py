"""
ga4check CLI - capture GA4 traffic from a live page and assert on it.
"""
import sys
import logging
from typing import Optional, Tuple

import click
from rich.logging import RichHandler
from rich.markup import escape

from . import CATEGORIES, Ga4CheckCLI, console, print_event_table, print_form_table
from ..automation.errors import Ga4CheckError, NavigationError
from ..automation.network import EventParameterDictionary, NetworkObserver
from ..automation.playwright_engine import PlaywrightEngine
from ..automation.runner import SessionOptions, TrackingSession
from ..config.loader import load_form_configs, load_site
from ..report import Reporter

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger("ga4check")


@click.group(invoke_without_command=True)
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug output",
    show_default=True
)
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """ga4check - verify that user interactions fire the expected GA4 events."""
    ctx.obj = Ga4CheckCLI(debug=debug)

    # If no command is provided, show help and exit with a usage status
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(2)


@cli.command()
@click.argument("url")
@click.option("--headless/--headed", default=None, help="Run the browser headless (default from settings)")
@click.option("--viewport-width", type=int, default=None, help="Viewport width in pixels")
@click.option("--viewport-height", type=int, default=None, help="Viewport height in pixels")
@click.option("--form-config", default=None, help="Name of the form config to test")
@click.option(
    "--only",
    type=click.Choice(CATEGORIES),
    multiple=True,
    help="Run only these check families (repeatable)"
)
@click.option("--screenshot/--no-screenshot", default=True, show_default=True, help="Save a full-page screenshot")
@click.option(
    "--json-report",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write results as JSON to this path"
)
@click.pass_obj
def run(
    app: Ga4CheckCLI,
    url: str,
    headless: Optional[bool],
    viewport_width: Optional[int],
    viewport_height: Optional[int],
    form_config: Optional[str],
    only: Tuple[str, ...],
    screenshot: bool,
    json_report: Optional[str],
) -> None:
    """Load URL, run the enabled checks and report verdicts."""
    site, settings = app.resolve(url, app.cli_overrides(headless, viewport_width, viewport_height, only))
    reporter = Reporter(url=url, console=console)

    engine = PlaywrightEngine()
    try:
        app.start_engine(engine, settings)
        try:
            session = TrackingSession(
                engine, url, site, settings,
                SessionOptions(form_config=form_config, screenshot=screenshot),
            )
            report = session.run()
        finally:
            engine.stop()
    except NavigationError as e:
        console.print(f"[red]✗[/] Could not load page: {escape(str(e))}")
        sys.exit(1)
    except Ga4CheckError as e:
        console.print(f"[red]✗[/] Run failed: {escape(str(e))}")
        if app.debug:
            import traceback
            console.print(traceback.format_exc())
        sys.exit(1)

    reporter.extend(report.results)
    reporter.meta = {
        'site': report.site,
        'form': report.form,
        'form_selection': report.form_selection,
        'events_captured': report.events_captured,
        'screenshot': report.screenshot,
    }
    reporter.print_summary()
    if json_report:
        path = reporter.write_json(json_report)
        console.print(f"[green]✓[/] JSON report written to [bold]{path}[/]")
    sys.exit(reporter.exit_code())


@cli.command()
@click.argument("url")
@click.option("--headless/--headed", default=False, show_default=True, help="Run the browser headless")
@click.option(
    "--duration",
    type=int,
    default=60,
    show_default=True,
    help="Seconds to keep the page open while logging GA4 traffic"
)
@click.pass_obj
def browse(app: Ga4CheckCLI, url: str, headless: bool, duration: int) -> None:
    """Open URL and log GA4 requests for manual inspection."""
    _, settings = app.resolve(url, {"headless": headless})
    observer = NetworkObserver(settings.ga4_urls, EventParameterDictionary(settings.event_params))

    engine = PlaywrightEngine()
    try:
        app.start_engine(engine, settings)
        try:
            observer.attach(engine)
            engine.goto(url, timeout_ms=settings.browser_timeout_ms)
            console.print(f"[green]✓[/] Loaded [bold]{url}[/]; watching GA4 traffic for {duration}s")
            engine.wait(duration * 1000)
        finally:
            engine.stop()
    except Ga4CheckError as e:
        console.print(f"[red]✗[/] Browse failed: {escape(str(e))}")
        sys.exit(1)

    print_event_table(observer.events)


@cli.command()
@click.argument("url")
@click.pass_obj
def forms(app: Ga4CheckCLI, url: str) -> None:
    """List the form configs known for URL's domain."""
    try:
        site = load_site(url)
        configs = load_form_configs(site)
    except Ga4CheckError as e:
        console.print(f"[red]✗[/] Failed to load form configs: {escape(str(e))}")
        sys.exit(1)
    print_form_table(list(configs.values()))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
