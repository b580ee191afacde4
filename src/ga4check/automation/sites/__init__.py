"""Site profiles, registered by domain name (e.g. ``neffy`` for www.neffy.com)."""

from typing import Dict, Type, List

from .base_site import SiteProfile

SITES: Dict[str, Type[SiteProfile]] = {}


def register_site(name: str):
    """Decorator to register a site profile class."""
    def decorator(cls: Type[SiteProfile]) -> Type[SiteProfile]:
        cls.domain = name.lower()
        SITES[name.lower()] = cls
        return cls
    return decorator


def get_site(name: str) -> SiteProfile:
    """Return the profile registered for ``name``, or an empty default profile."""
    cls = SITES.get((name or "").lower())
    return cls() if cls else SiteProfile()


def list_available_sites() -> List[str]:
    return sorted(SITES.keys())


from . import neffy  # noqa: E402,F401
from . import xiaflex  # noqa: E402,F401
from . import sample  # noqa: E402,F401
