"""
Physical size models: finished trim sizes and press sheets.

Both are immutable value types. TrimSize compares with a 1 mm tolerance so a
custom 105x148 entry is recognised as A6. Tolerant equality is not
transitive, so TrimSize is unhashable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any

# Matching tolerance for catalog lookups, in millimeters
SIZE_TOLERANCE_MM = 1.0


@dataclass(frozen=True, eq=False)
class TrimSize:
    """
    Finished, cut dimensions of a printed piece in millimeters.

    Orientation is significant: 105x148 and 148x105 are different sizes.
    """

    width: float
    """Width in mm (> 0)."""

    height: float
    """Height in mm (> 0)."""

    def __post_init__(self) -> None:
        if not (self.width > 0 and self.height > 0):
            raise ValueError(
                f"Trim size must be positive, got {self.width}x{self.height}"
            )

    def matches(self, other: "TrimSize", tolerance: float = SIZE_TOLERANCE_MM) -> bool:
        """Whether both dimensions agree within ``tolerance`` mm."""
        return (
            abs(self.width - other.width) <= tolerance
            and abs(self.height - other.height) <= tolerance
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrimSize):
            return NotImplemented
        return self.matches(other)

    __hash__ = None  # type: ignore[assignment]

    @property
    def rotated(self) -> "TrimSize":
        """The same piece turned by 90 degrees."""
        return TrimSize(width=self.height, height=self.width)

    @property
    def label(self) -> str:
        """Display string such as '105×148'."""
        return f"{self.width:g}×{self.height:g}"

    def to_dict(self) -> Dict[str, Any]:
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True)
class PressSheet:
    """
    A physical press sheet and its usable imprint area.

    The working area is what remains after the press trim margins are
    removed; it must be strictly smaller than the raw sheet on both axes.
    """

    name: str
    """Sheet class name (e.g., 'SRA3')."""

    sheet_width: float
    """Raw sheet width in mm."""

    sheet_height: float
    """Raw sheet height in mm."""

    working_width: float
    """Usable imprint width in mm."""

    working_height: float
    """Usable imprint height in mm."""

    def __post_init__(self) -> None:
        if not (0 < self.working_width < self.sheet_width):
            raise ValueError(
                f"{self.name}: working width {self.working_width} must be "
                f"positive and less than sheet width {self.sheet_width}"
            )
        if not (0 < self.working_height < self.sheet_height):
            raise ValueError(
                f"{self.name}: working height {self.working_height} must be "
                f"positive and less than sheet height {self.sheet_height}"
            )

    @classmethod
    def from_margins(
        cls,
        name: str,
        sheet_width: float,
        sheet_height: float,
        margin: float,
    ) -> "PressSheet":
        """Build a press sheet with the same trim margin on every side."""
        return cls(
            name=name,
            sheet_width=sheet_width,
            sheet_height=sheet_height,
            working_width=sheet_width - 2 * margin,
            working_height=sheet_height - 2 * margin,
        )

    def fits(self, trim: TrimSize) -> bool:
        """Whether ``trim`` fits the working area in its given orientation."""
        return trim.width <= self.working_width and trim.height <= self.working_height

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "sheet_width": self.sheet_width,
            "sheet_height": self.sheet_height,
            "working_width": self.working_width,
            "working_height": self.working_height,
        }


# The one sheet class the shop currently runs: SRA3 with a 7 mm margin
SRA3_SHEET = PressSheet.from_margins("SRA3", 320.0, 450.0, 7.0)
