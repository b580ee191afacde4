from ..actions import ClickStep, CustomStep, RemoveCookieBannerStep
from . import register_site
from .base_site import SiteProfile


def _log_in_page(message: str):
    def run(engine) -> None:
        engine.evaluate("(message) => console.log(message)", message)
    return run


@register_site("sample")
class SampleSite(SiteProfile):
    """Reference profile showing every hook a site can declare."""

    settings_overrides = {
        "categories": {"page_view": True, "click": True},
        "scroll": {"thresholds": [25, 50, 75, 90]},
    }

    pre_test_actions = [
        RemoveCookieBannerStep(),
        CustomStep(_log_in_page("runs before all tests, after the consent banner is closed")),
    ]

    after_refresh_actions = [
        CustomStep(_log_in_page("runs after every refresh")),
    ]

    pre_form_actions = [
        ClickStep(".sample-form-trigger"),
        CustomStep(_log_in_page("runs before form testing")),
    ]

    click_checks = [
        {
            "name": "main navigation",
            "selector": "nav a.primary",
            "expect": {"eventCategory": "nav"},
        },
        {
            "name": "isi link",
            "selector": "a.isi-link",
            "expect": {"eventLabel": {"value": "important safety information", "mode": "ignore_case"}},
        },
    ]
