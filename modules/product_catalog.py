"""
Product catalog: what each product offers and how far it may be ordered.

Capabilities replace per-product special cases: validation and the UI both
ask an entry whether it supports pages, cutting, folding, magnetic backing
or rounded corners.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, FrozenSet, Optional, Tuple

from models.job_spec import (
    CAPABILITY_PAGES,
    CAPABILITY_CUTTING,
    CAPABILITY_FOLDING,
    CAPABILITY_MAGNETIC,
    CAPABILITY_ROUND_CORNERS,
)

DEFAULT_MAX_QUANTITY = 10000

# Per-product ceilings; unlisted products use DEFAULT_MAX_QUANTITY
MAX_QUANTITY: Dict[str, int] = {
    "flyers": 100000,
    "business_cards": 50000,
    "stickers": 50000,
    "labels": 50000,
    "booklets": 5000,
    "brochures": 5000,
    "posters": 1000,
    "banners": 500,
}

_PAGE_OPTIONS = tuple(range(4, 68, 4))


def max_quantity_for(product_type: str) -> int:
    return MAX_QUANTITY.get(product_type, DEFAULT_MAX_QUANTITY)


@dataclass(frozen=True)
class ProductCatalogEntry:
    """
    One orderable product.
    """

    key: str
    """Catalog key used in job specs."""

    display_name: str
    """Name shown to customers."""

    formats: Tuple[str, ...] = ()
    """Formats offered in the UI (custom sizes are always allowed)."""

    sides: Tuple[int, ...] = (1, 2)
    """Allowed printed sides."""

    capabilities: FrozenSet[str] = frozenset()
    """Options this product supports."""

    page_options: Tuple[int, ...] = ()
    """Page counts offered when 'pages' is a capability."""

    is_roll: bool = False
    """Printed on roll media; no sheet imposition."""

    @property
    def max_quantity(self) -> int:
        return max_quantity_for(self.key)

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "display_name": self.display_name,
            "formats": list(self.formats),
            "sides": list(self.sides),
            "capabilities": sorted(self.capabilities),
            "page_options": list(self.page_options),
            "max_quantity": self.max_quantity,
            "is_roll": self.is_roll,
        }


class ProductCatalog:
    """Lookup wrapper over a set of product entries."""

    def __init__(self, entries: Tuple[ProductCatalogEntry, ...]) -> None:
        self._entries: Dict[str, ProductCatalogEntry] = {e.key: e for e in entries}

    def get(self, key: str) -> Optional[ProductCatalogEntry]:
        return self._entries.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self):
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def to_list(self):
        return [entry.to_dict() for entry in self._entries.values()]


_CUT = frozenset({CAPABILITY_CUTTING})
_CARD = frozenset({CAPABILITY_CUTTING, CAPABILITY_ROUND_CORNERS})

DEFAULT_PRODUCT_CATALOG = ProductCatalog((
    ProductCatalogEntry("flyers", "Flyers", ("A6", "A5", "A4", "A3", "SRA3", "DL"), capabilities=_CUT),
    ProductCatalogEntry("business_cards", "Business cards", ("BUSINESS", "EURO"), capabilities=_CARD),
    ProductCatalogEntry(
        "magnetic_cards", "Magnetic cards", ("BUSINESS", "EURO"),
        capabilities=_CARD | {CAPABILITY_MAGNETIC},
    ),
    ProductCatalogEntry(
        "booklets", "Booklets", ("A6", "A5", "A4"), sides=(2,),
        capabilities=frozenset({CAPABILITY_PAGES, CAPABILITY_FOLDING}),
        page_options=_PAGE_OPTIONS,
    ),
    ProductCatalogEntry(
        "brochures", "Brochures", ("A5", "A4", "DL"),
        capabilities=frozenset({CAPABILITY_FOLDING, CAPABILITY_CUTTING}),
    ),
    ProductCatalogEntry(
        "notebooks", "Notebooks", ("A6", "A5", "A4"),
        capabilities=frozenset({CAPABILITY_PAGES}), page_options=_PAGE_OPTIONS,
    ),
    ProductCatalogEntry("posters", "Posters", ("A3", "A2", "A1", "A0", "SRA3"), sides=(1,)),
    ProductCatalogEntry("stickers", "Stickers", ("A6", "A5", "A4"), sides=(1,), capabilities=_CARD),
    ProductCatalogEntry("labels", "Labels", ("A6", "A5", "A4"), sides=(1,), capabilities=_CARD),
    ProductCatalogEntry(
        "badges", "Badges", ("BUSINESS", "EURO"),
        capabilities=_CARD | {CAPABILITY_MAGNETIC},
    ),
    ProductCatalogEntry(
        "calendars", "Calendars", ("A4", "A3"),
        capabilities=frozenset({CAPABILITY_PAGES}), page_options=(12, 16, 24, 28),
    ),
    ProductCatalogEntry("forms", "Forms", ("A5", "A4")),
    ProductCatalogEntry("envelopes", "Envelopes", ("DL", "C4", "C5", "C6"), sides=(1,)),
    ProductCatalogEntry("menus", "Menus", ("A5", "A4", "A3"), capabilities=frozenset({CAPABILITY_FOLDING})),
    ProductCatalogEntry(
        "invitations", "Invitations", ("A6", "A5", "DL"),
        capabilities=frozenset({CAPABILITY_FOLDING, CAPABILITY_ROUND_CORNERS}),
    ),
    ProductCatalogEntry("certificates", "Certificates", ("A5", "A4")),
    ProductCatalogEntry("banners", "Banners", sides=(1,), is_roll=True),
    ProductCatalogEntry("photo_wallpaper", "Photo wallpaper", sides=(1,), is_roll=True),
))
