"""Known outdoor brands and logo lookup."""

import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

LOGO_SERVICE_URL = "https://logo.clearbit.com"


@dataclass(frozen=True)
class BrandInfo:
    name: str
    domain: str


BRANDS = [
    BrandInfo("Anker", "anker.com"),
    BrandInfo("Arc'teryx", "arcteryx.com"),
    BrandInfo("Big Agnes", "bigagnes.com"),
    BrandInfo("Black Diamond", "blackdiamondequipment.com"),
    BrandInfo("Columbia", "columbia.com"),
    BrandInfo("Deuter", "deuter.com"),
    BrandInfo("Garmin", "garmin.com"),
    BrandInfo("Gossamer Gear", "gossamergear.com"),
    BrandInfo("Hyperlite Mountain Gear", "hyperlitemountaingear.com"),
    BrandInfo("Jetboil", "jetboil.com"),
    BrandInfo("Kelty", "kelty.com"),
    BrandInfo("Leatherman", "leatherman.com"),
    BrandInfo("MSR", "msrgear.com"),
    BrandInfo("Mountain Hardwear", "mountainhardwear.com"),
    BrandInfo("Nemo", "nemoequipment.com"),
    BrandInfo("Osprey", "osprey.com"),
    BrandInfo("Patagonia", "patagonia.com"),
    BrandInfo("Petzl", "petzl.com"),
    BrandInfo("Salomon", "salomon.com"),
    BrandInfo("Sawyer", "sawyer.com"),
    BrandInfo("Sea to Summit", "seatosummit.com"),
    BrandInfo("Snow Peak", "snowpeak.com"),
    BrandInfo("The North Face", "thenorthface.com"),
    BrandInfo("Therm-a-Rest", "thermarest.com"),
    BrandInfo("Toaks", "toaksoutdoor.com"),
    BrandInfo("Zpacks", "zpacks.com"),
]

_BRAND_MAP = {b.name.lower(): b for b in BRANDS}


class DomainFinder(Protocol):
    async def find_brand_domain(self, brand_name: str) -> str | None:
        ...


def search_brands(text: str, limit: int = 5) -> list[BrandInfo]:
    """Known brands whose name contains text (case-insensitive)."""
    if not text:
        return []
    needle = text.lower()
    return [b for b in BRANDS if needle in b.name.lower()][:limit]


def logo_url(domain: str | None) -> str | None:
    return f"{LOGO_SERVICE_URL}/{domain}" if domain else None


def brand_initial(brand_name: str) -> str:
    """Placeholder shown when no logo is available."""
    return brand_name[:1].upper() if brand_name else "?"


class BrandDirectory:
    """Resolves brand names to web domains, curated list first."""

    def __init__(self, finder: DomainFinder | None = None):
        self.finder = finder
        self._cache: dict[str, str | None] = {}

    async def resolve_domain(self, brand_name: str) -> str | None:
        key = brand_name.strip().lower()
        if not key:
            return None
        known = _BRAND_MAP.get(key)
        if known:
            return known.domain
        if key in self._cache:
            return self._cache[key]
        if self.finder is None:
            return None

        domain = await self.finder.find_brand_domain(brand_name.strip())
        # Only successful lookups are cached so a later retry can succeed
        if domain:
            self._cache[key] = domain
            logger.info(f"Resolved brand {brand_name} to {domain}")
        return domain
