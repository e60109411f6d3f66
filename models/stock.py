"""
Stock catalog data models.

These models represent point-in-time snapshots of the warehouse paper
catalog: paper types, the densities stocked for each, unit prices and
currently known available quantities.

Thread Safety:
    - StockCatalogSnapshot is a frozen dataclass (immutable)
    - Safe to read from any thread without locks
    - New snapshots replace old ones atomically (see CatalogService)
    - The estimation engine receives a snapshot by reference and never
      mutates it
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, List, Optional, Tuple

from logging_config import get_logger

logger = get_logger(__name__)


def to_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Convert a JSON number or numeric string to Decimal.

    Floats go through ``str`` so 0.4 becomes Decimal('0.4'), not its binary
    expansion. Returns ``default`` for missing or unparseable values.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip().replace(",", "."))
    except (InvalidOperation, ValueError):
        return default


@dataclass(frozen=True)
class DensityStock:
    """
    One stocked density of a paper type: the concrete SKU.
    """

    value: float
    """Density in g/m2."""

    price: Decimal
    """Unit price per press sheet before the paper type multiplier."""

    available_quantity: int = 0
    """Sheets currently known to be in stock."""

    material_id: str = ""
    """Warehouse material identifier (SKU)."""

    material_name: str = ""
    """Warehouse material display name."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "price": str(self.price),
            "available_quantity": self.available_quantity,
            "material_id": self.material_id,
            "material_name": self.material_name,
        }

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> Optional["DensityStock"]:
        """
        Parse one density entry from the warehouse payload.

        Returns None when the entry has no usable density or price; such
        entries are dropped with a warning rather than priced at zero.
        """
        value = data.get("value", data.get("density"))
        price = to_decimal(data.get("price"))
        if value is None or price is None:
            logger.warning(f"Skipping density entry without value or price: {data}")
            return None
        if not price.is_finite() or price < 0:
            logger.warning(f"Skipping density entry with bad price: {data}")
            return None

        try:
            value = float(value)
        except (TypeError, ValueError):
            logger.warning(f"Skipping density entry with bad value: {data}")
            return None

        available = data.get("available_quantity", data.get("availableQuantity", 0))
        try:
            available = int(available or 0)
        except (TypeError, ValueError):
            available = 0

        return cls(
            value=value,
            price=price,
            available_quantity=available,
            material_id=str(data.get("material_id", data.get("materialId", "")) or ""),
            material_name=str(data.get("material_name", data.get("materialName", "")) or ""),
        )


@dataclass(frozen=True)
class PaperStock:
    """
    A paper type and all densities stocked for it.
    """

    name: str
    """Paper type key (e.g., 'semi-matte')."""

    display_name: str
    """Human-readable name."""

    densities: Tuple[DensityStock, ...] = ()
    """Stocked densities."""

    price_multiplier: Decimal = Decimal("1")
    """Per-type multiplier applied to every density price."""

    @property
    def density_values(self) -> Tuple[float, ...]:
        return tuple(d.value for d in self.densities)

    def get_density(self, value: Any) -> Optional[DensityStock]:
        """Find a density by exact numeric match."""
        for density in self.densities:
            if density.value == value:
                return density
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "price_multiplier": str(self.price_multiplier),
            "densities": [d.to_dict() for d in self.densities],
        }

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "PaperStock":
        densities = []
        for entry in data.get("densities") or []:
            density = DensityStock.from_api_data(entry)
            if density is not None:
                densities.append(density)

        name = str(data.get("name", ""))
        multiplier = to_decimal(
            data.get("price_multiplier", data.get("priceMultiplier")), Decimal("1")
        )
        if not multiplier.is_finite() or multiplier < 0:
            logger.warning(f"Ignoring bad price multiplier for {name}: {multiplier}")
            multiplier = Decimal("1")

        return cls(
            name=name,
            display_name=str(data.get("display_name", data.get("displayName", name)) or name),
            densities=tuple(sorted(densities, key=lambda d: d.value)),
            price_multiplier=multiplier,
        )


@dataclass(frozen=True)
class StockCatalogSnapshot:
    """
    Immutable snapshot of the warehouse paper catalog at a point in time.

    Staleness is checked by the caller against its own TTL; the snapshot
    only records when it was fetched.
    """

    fetched_at: datetime
    """When this snapshot was created (UTC)."""

    paper_types: Tuple[PaperStock, ...] = ()
    """All paper types known to the warehouse."""

    source: str = ""
    """Where the data came from (file path or service URL)."""

    @property
    def age_seconds(self) -> float:
        """Seconds since this snapshot was fetched."""
        return (datetime.now(timezone.utc) - self.fetched_at).total_seconds()

    @property
    def is_empty(self) -> bool:
        return not self.paper_types

    def is_stale(self, ttl_seconds: float) -> bool:
        """Whether the snapshot is older than ``ttl_seconds``."""
        return self.age_seconds > ttl_seconds

    def get_paper_type(self, name: str) -> Optional[PaperStock]:
        """Find a paper type by exact key."""
        for paper in self.paper_types:
            if paper.name == name:
                return paper
        return None

    def paper_type_names(self) -> List[str]:
        return [p.name for p in self.paper_types]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fetched_at": self.fetched_at.isoformat(),
            "age_seconds": round(self.age_seconds, 1),
            "source": self.source,
            "paper_types": [p.to_dict() for p in self.paper_types],
        }

    @classmethod
    def from_api_data(
        cls,
        data: Dict[str, Any],
        source: str = "",
        fetched_at: Optional[datetime] = None,
    ) -> "StockCatalogSnapshot":
        """
        Create a snapshot from the warehouse payload.

        Accepts either ``{"paper_types": [...]}`` or a bare list of paper
        types, which is what the warehouse endpoint returns.
        """
        if isinstance(data, list):
            entries = data
        else:
            entries = data.get("paper_types", data.get("paperTypes", [])) or []

        paper_types = tuple(PaperStock.from_api_data(entry) for entry in entries)

        return cls(
            fetched_at=fetched_at or datetime.now(timezone.utc),
            paper_types=paper_types,
            source=source,
        )

    @classmethod
    def create_empty(cls) -> "StockCatalogSnapshot":
        """
        Create an empty snapshot (used before the first fetch completes).

        The timestamp is far in the past so the snapshot reads as stale.
        """
        return cls(
            fetched_at=datetime(2000, 1, 1, tzinfo=timezone.utc),
            paper_types=(),
            source="",
        )
