"""
Resolves the site profile, settings and form configs for a target URL.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

from ..automation.errors import ConfigurationError
from ..automation.sites import get_site
from ..automation.sites.base_site import SiteProfile
from .models import FormConfig
from .settings import Settings

logger = logging.getLogger("ga4check")


def extract_domain_name(url: str) -> Optional[str]:
    """Return the second-to-last hostname label: www.neffy.com -> neffy."""
    hostname = urlparse(url).hostname
    if not hostname:
        return None
    parts = hostname.split(".")
    if len(parts) >= 2:
        return parts[-2]
    return parts[0]


def load_site(url: str) -> SiteProfile:
    domain = extract_domain_name(url)
    site = get_site(domain or "")
    if site.domain:
        logger.info(f"[config] loaded site profile for domain: {domain}")
    else:
        logger.info(f"[config] no site profile for domain: {domain}; using defaults")
    return site


def build_settings(site: SiteProfile, overrides: Optional[Dict[str, Any]] = None, base: Optional[Settings] = None) -> Settings:
    """Defaults, then the site's overrides, then caller (CLI) overrides."""
    settings = (base or Settings()).merged(site.settings_overrides)
    return settings.merged(overrides)


def load_form_configs(site: SiteProfile) -> Dict[str, FormConfig]:
    forms = site.forms()
    if forms:
        logger.info(f"[config] {len(forms)} form config(s): {', '.join(forms)}")
    return forms


def detect_form_config_by_page(forms: Dict[str, FormConfig], page_url: str) -> Optional[FormConfig]:
    for config in forms.values():
        if config.matches_page(page_url):
            logger.info(f"[config] matched form config '{config.name}' for page: {config.page}")
            return config
    return None


def select_form_config(
    forms: Dict[str, FormConfig], page_url: str, name: Optional[str] = None
) -> Tuple[Optional[FormConfig], str]:
    """Pick a form config by explicit name, then by page match.

    Returns ``(config, how)`` where ``how`` is ``"named"``, ``"page"`` or
    ``"none"``. An unknown explicit name is a configuration error.
    """
    if name:
        if name not in forms:
            available = ", ".join(forms) or "none"
            raise ConfigurationError(f"Unknown form config '{name}' (available: {available})")
        return forms[name], "named"
    config = detect_form_config_by_page(forms, page_url)
    if config is not None:
        return config, "page"
    return None, "none"
