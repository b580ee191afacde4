"""
Runtime settings for ga4check.

Defaults mirror the tracker's global configuration: browser settings, timing
constants, GA4 endpoint patterns and the event parameter dictionary. A site
profile may override any of them with a plain dict, which is deep-merged by
:meth:`Settings.merged`.
"""
from __future__ import annotations

import copy
import dataclasses
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..automation.errors import ConfigurationError


DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

GA4_URLS = [
    "https://www.google-analytics.com/g/collect",
    "https://analytics.google.com/g/collect",
]

# canonical name -> aliases, probed in order
EVENT_PARAMS: Dict[str, List[str]] = {
    "eventName": ["en"],
    "eventCategory": ["ep.event_category", "ep.Event_Category", "event_category", "Event_Category"],
    "eventAction": ["ep.event_action", "ep.Event_Action", "event_action", "Event_Action"],
    "eventLocation": ["ep.event_location", "ep.Event_Location", "event_location", "Event_Location"],
    "eventLabel": ["ep.event_label", "ep.Event_Label", "event_label", "Event_Label"],
    "linkClasses": ["ep.link_classes", "ep.Link_Classes", "link_classes", "Link_Classes"],
    "linkURL": ["ep.link_url", "ep.Link_URL", "link_url", "Link_URL"],
    "linkDomain": ["ep.link_domain", "ep.Link_Domain", "link_domain", "Link_Domain"],
    "outbound": ["ep.outbound", "ep.Outbound", "outbound", "Outbound"],
    "fullURL": ["ep.full_url", "ep.Full_URL", "full_url", "Full_URL", "dl"],
    "formCode": ["ep.form_code", "ep.Form_Code", "ep.form_name", "ep.form_id", "form_code", "form_name"],
    "percentScrolled": ["epn.percent_scrolled", "ep.percent_scrolled", "percent_scrolled"],
}


@dataclass
class ClickSettings:
    event_delay_ms: int = 8000
    timeout_ms: int = 5000
    wait_after_click_ms: int = 100
    selectors: List[str] = field(default_factory=lambda: [
        'a',
        'button',
        'input[type="button"]',
        '[role="button"]',
        '[onclick]',
        '.btn',
        '.button',
    ])
    # matched case-insensitively against the decoded event name/action
    exclude_keywords: List[str] = field(default_factory=lambda: [
        'timer',
        'user_engagement',
        'pageview',
        'page_view',
        'page view',
        'scroll',
        'scroll depth',
        'scroll_depth',
        'form_start',
        'form_field',
        'form_submission',
        'form_error',
    ])


@dataclass
class ScrollSettings:
    event_delay_ms: int = 5000
    thresholds: List[int] = field(default_factory=lambda: [10, 20, 25, 30, 40, 50, 60, 70, 75, 80, 90, 100])
    buffer_px: int = 20
    event_keywords: List[str] = field(default_factory=lambda: ['scroll', 'scroll_depth', 'scroll_percentage'])


@dataclass
class FormSettings:
    field_fill_delay_ms: int = 8000
    blur_delay_ms: int = 1000
    submit_delay_ms: int = 5000
    error_check_delay_ms: int = 3000
    success_check_delay_ms: int = 4000
    event_delay_ms: int = 8000
    timeout_ms: int = 2000
    refresh_settle_ms: int = 2000
    track_events: bool = True
    scenarios: Dict[str, bool] = field(default_factory=lambda: {
        'individual_fields': True,
        'valid_submission': True,
        'empty_submission': True,
        'invalid_submission': True,
    })


@dataclass
class ConsentFramework:
    name: str
    accept_selectors: List[str] = field(default_factory=list)
    # clicked in order when no accept button is present (e.g. settings -> save)
    fallback_selectors: List[str] = field(default_factory=list)
    banner_selectors: List[str] = field(default_factory=list)


def _default_consent_frameworks() -> List[ConsentFramework]:
    return [
        ConsentFramework(
            name="pantheon",
            accept_selectors=[".pds-button"],
        ),
        ConsentFramework(
            name="onetrust",
            accept_selectors=["#onetrust-accept-btn-handler"],
            fallback_selectors=[".ot-sdk-show-settings", ".save-preference-btn-handler"],
            banner_selectors=["#onetrust-banner-sdk", "#onetrust-consent-sdk"],
        ),
        ConsentFramework(
            name="generic",
            banner_selectors=[".cookie-banner", '[class*="cookie"]', '[id*="cookie"]'],
        ),
    ]


@dataclass
class Settings:
    viewport_width: int = 1280
    viewport_height: int = 720
    user_agent: str = DEFAULT_USER_AGENT
    headless: bool = True

    browser_timeout_ms: int = 30000
    page_load_timeout_ms: int = 5000
    network_wait_ms: int = 2000
    min_event_delay_ms: int = 0
    poll_interval_ms: int = 250
    page_view_timeout_ms: int = 10000

    ga4_urls: List[str] = field(default_factory=lambda: list(GA4_URLS))
    event_params: Dict[str, List[str]] = field(default_factory=lambda: copy.deepcopy(EVENT_PARAMS))

    categories: Dict[str, bool] = field(default_factory=lambda: {
        'click': False,
        'scroll': False,
        'page_view': False,
        'exit_modal': False,
        'forms': True,
    })

    click: ClickSettings = field(default_factory=ClickSettings)
    scroll: ScrollSettings = field(default_factory=ScrollSettings)
    form: FormSettings = field(default_factory=FormSettings)

    exit_modal_selectors: List[str] = field(default_factory=lambda: [
        '[data-gtm-destination="Exit Modal"]',
        '.exit-link',
    ])
    consent_frameworks: List[ConsentFramework] = field(default_factory=_default_consent_frameworks)
    # never clicked by the click checks
    consent_selectors: List[str] = field(default_factory=lambda: [
        '#ot-sdk-btn',
        '.ot-link-btn',
        '#onetrust-accept-btn-handler',
        '#onetrust-reject-all-handler',
        '.onetrust-close-btn-handler',
        '.ot-floating-button__open',
        '.ot-floating-button__close',
    ])

    screenshot_path: str = "screenshot.png"

    def enabled(self, category: str) -> bool:
        return bool(self.categories.get(category, False))

    def merged(self, overrides: Optional[Dict[str, Any]]) -> 'Settings':
        """Return a copy of these settings with ``overrides`` deep-merged in.

        Nested dataclass sections accept partial dicts; dict-valued settings
        (``categories``, ``event_params``, ``form.scenarios``) are merged key by
        key; everything else is replaced.
        """
        if not overrides:
            return copy.deepcopy(self)
        return _merge_dataclass(self, overrides, path="settings")


def _merge_dataclass(obj: Any, overrides: Dict[str, Any], path: str) -> Any:
    names = {f.name for f in dataclasses.fields(obj)}
    changes: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in names:
            raise ConfigurationError(f"Unknown setting: {path}.{key}")
        current = getattr(obj, key)
        if dataclasses.is_dataclass(current) and isinstance(value, dict):
            changes[key] = _merge_dataclass(current, value, f"{path}.{key}")
        elif isinstance(current, dict) and isinstance(value, dict):
            merged = copy.deepcopy(current)
            merged.update(copy.deepcopy(value))
            changes[key] = merged
        elif key == "consent_frameworks":
            changes[key] = [
                v if isinstance(v, ConsentFramework) else ConsentFramework(**v)
                for v in value
            ]
        else:
            changes[key] = copy.deepcopy(value)
    base = copy.deepcopy(obj)
    return dataclasses.replace(base, **changes)
