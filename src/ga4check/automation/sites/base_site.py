from typing import Any, Dict, List

from ...config.models import FormConfig


class SiteProfile:
    """Per-domain configuration: forms, settings overrides and page hooks.

    Subclasses override the class attributes; the base class is the profile
    used for domains without one.
    """

    domain: str = ""
    form_configs: Dict[str, Dict[str, Any]] = {}
    settings_overrides: Dict[str, Any] = {}
    # run once after the first page load and consent handling
    pre_test_actions: List[Any] = []
    # run after every page reload
    after_refresh_actions: List[Any] = []
    # run before form testing starts
    pre_form_actions: List[Any] = []
    click_checks: List[Any] = []

    def match(self, domain_name: str) -> bool:
        return bool(self.domain) and domain_name == self.domain

    def forms(self) -> Dict[str, FormConfig]:
        return {name: FormConfig.from_dict(name, data) for name, data in self.form_configs.items()}
