"""
Pricing policy model.

A PricingPolicy bundles the four named adjustments the pricing engine
applies: urgency multiplier, volume discount, loyalty discount and the
minimum order floor. Each adjustment can be switched off independently;
a disabled adjustment returns its neutral value.

The policy is supplied by the pricing collaborator (as JSON) and handed to
each estimation call as an immutable value.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Any, Optional, Tuple

from models.job_spec import coerce_bool
from models.stock import to_decimal


@dataclass(frozen=True)
class MinimumOrderRule:
    """Price floor for small runs of one format/product combination."""

    format_name: str
    """Catalog format name, matched case-insensitively."""

    product_type: str
    """Product catalog key."""

    max_quantity: int
    """Rule applies for quantity <= max_quantity."""

    cost: Decimal
    """Floor amount."""

    def applies(self, format_name: Optional[str], product_type: str, quantity: int) -> bool:
        if not format_name:
            return False
        return (
            self.format_name.lower() == format_name.lower()
            and self.product_type == product_type
            and quantity <= self.max_quantity
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format_name,
            "product_type": self.product_type,
            "max_quantity": self.max_quantity,
            "cost": str(self.cost),
        }


@dataclass(frozen=True)
class PricingPolicy:
    """
    Named, independently toggleable price adjustments.
    """

    urgency_multipliers: Tuple[Tuple[str, Decimal], ...]
    """(tier, factor) pairs."""

    volume_tiers: Tuple[Tuple[int, Decimal], ...]
    """(min_quantity, fraction) pairs, any order."""

    loyalty_discounts: Tuple[Tuple[str, Decimal], ...]
    """(customer tier, fraction) pairs."""

    minimum_orders: Tuple[MinimumOrderRule, ...] = ()
    """Minimum order floors."""

    max_discount_cap: Decimal = Decimal("0.25")
    """Ceiling for volume + loyalty combined."""

    urgency_enabled: bool = True
    volume_enabled: bool = True
    loyalty_enabled: bool = True
    minimum_order_enabled: bool = True

    # -------------------------------------------------------------------------
    # Tier introspection (used by validation)
    # -------------------------------------------------------------------------

    @property
    def urgency_tiers(self) -> Tuple[str, ...]:
        return tuple(tier for tier, _ in self.urgency_multipliers)

    @property
    def customer_tiers(self) -> Tuple[str, ...]:
        return tuple(tier for tier, _ in self.loyalty_discounts)

    # -------------------------------------------------------------------------
    # Adjustments
    # -------------------------------------------------------------------------

    def urgency_multiplier(self, tier: str) -> Decimal:
        """
        Price factor for an urgency tier.

        Raises:
            KeyError: unknown tier (validation rejects these earlier)
        """
        if not self.urgency_enabled:
            return Decimal("1")
        return dict(self.urgency_multipliers)[tier]

    def volume_discount(self, quantity: int) -> Decimal:
        """Fraction of the highest tier whose min_quantity <= quantity."""
        if not self.volume_enabled:
            return Decimal("0")
        fraction = Decimal("0")
        best_threshold = -1
        for threshold, tier_fraction in self.volume_tiers:
            if threshold <= quantity and threshold > best_threshold:
                best_threshold = threshold
                fraction = tier_fraction
        return fraction

    def loyalty_discount(self, customer_tier: str) -> Decimal:
        """
        Raises:
            KeyError: unknown customer tier
        """
        if not self.loyalty_enabled:
            return Decimal("0")
        return dict(self.loyalty_discounts)[customer_tier]

    def minimum_order_cost(
        self,
        format_name: Optional[str],
        product_type: str,
        quantity: int,
    ) -> Decimal:
        """Floor amount for this job, or 0 when no rule applies."""
        if not self.minimum_order_enabled:
            return Decimal("0")
        for rule in self.minimum_orders:
            if rule.applies(format_name, product_type, quantity):
                return rule.cost
        return Decimal("0")

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "urgency_multipliers": {tier: str(f) for tier, f in self.urgency_multipliers},
            "volume_tiers": [
                {"min_quantity": q, "discount": str(f)} for q, f in self.volume_tiers
            ],
            "loyalty_discounts": {tier: str(f) for tier, f in self.loyalty_discounts},
            "minimum_orders": [rule.to_dict() for rule in self.minimum_orders],
            "max_discount_cap": str(self.max_discount_cap),
            "enabled": {
                "urgency": self.urgency_enabled,
                "volume": self.volume_enabled,
                "loyalty": self.loyalty_enabled,
                "minimum_order": self.minimum_order_enabled,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PricingPolicy":
        """
        Load a policy from its JSON form.

        Sections missing from ``data`` fall back to the default policy.
        """
        default = cls.default()
        enabled = data.get("enabled") or {}

        urgency = default.urgency_multipliers
        if "urgency_multipliers" in data:
            urgency = tuple(
                (str(tier), to_decimal(f)) for tier, f in data["urgency_multipliers"].items()
            )

        volume = default.volume_tiers
        if "volume_tiers" in data:
            volume = tuple(
                (int(entry["min_quantity"]), to_decimal(entry["discount"]))
                for entry in data["volume_tiers"]
            )

        loyalty = default.loyalty_discounts
        if "loyalty_discounts" in data:
            loyalty = tuple(
                (str(tier), to_decimal(f)) for tier, f in data["loyalty_discounts"].items()
            )

        minimum_orders = default.minimum_orders
        if "minimum_orders" in data:
            minimum_orders = tuple(
                MinimumOrderRule(
                    format_name=str(entry["format"]),
                    product_type=str(entry["product_type"]),
                    max_quantity=int(entry["max_quantity"]),
                    cost=to_decimal(entry["cost"]),
                )
                for entry in data["minimum_orders"]
            )

        return cls(
            urgency_multipliers=urgency,
            volume_tiers=volume,
            loyalty_discounts=loyalty,
            minimum_orders=minimum_orders,
            max_discount_cap=to_decimal(data.get("max_discount_cap"), default.max_discount_cap),
            urgency_enabled=coerce_bool(enabled.get("urgency", True)),
            volume_enabled=coerce_bool(enabled.get("volume", True)),
            loyalty_enabled=coerce_bool(enabled.get("loyalty", True)),
            minimum_order_enabled=coerce_bool(enabled.get("minimum_order", True)),
        )

    @classmethod
    def default(cls, max_discount_cap: Optional[Decimal] = None) -> "PricingPolicy":
        """The shop's standard price list."""
        return cls(
            urgency_multipliers=(
                ("standard", Decimal("1.0")),
                ("online", Decimal("1.0")),
                ("promo", Decimal("0.7")),
                ("urgent", Decimal("1.5")),
                ("rush", Decimal("1.5")),
                ("express", Decimal("1.8")),
                ("super_urgent", Decimal("2.0")),
            ),
            volume_tiers=(
                (100, Decimal("0.05")),
                (500, Decimal("0.10")),
                (1000, Decimal("0.15")),
                (2000, Decimal("0.20")),
                (5000, Decimal("0.25")),
            ),
            loyalty_discounts=(
                ("regular", Decimal("0")),
                ("bronze", Decimal("0.05")),
                ("silver", Decimal("0.10")),
                ("gold", Decimal("0.15")),
                ("platinum", Decimal("0.20")),
            ),
            minimum_orders=(
                MinimumOrderRule("A6", "flyers", 10, Decimal("2.50")),
                MinimumOrderRule("A5", "flyers", 10, Decimal("3.50")),
                MinimumOrderRule("A4", "flyers", 10, Decimal("5.00")),
                MinimumOrderRule("SRA3", "flyers", 5, Decimal("8.00")),
            ),
            max_discount_cap=max_discount_cap if max_discount_cap is not None else Decimal("0.25"),
        )
