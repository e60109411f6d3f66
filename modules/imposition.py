"""
Imposition: how many finished pieces fit on a press sheet, and how many
sheets a run needs.

Layout is a plain grid in the orientation the trim size already encodes.
Rotation is an explicit opt-in strategy (``allow_rotation``), never a
silent default.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_CEILING
from typing import Dict, Optional, Tuple

from core.exceptions import InfeasibleFormatError
from logging_config import get_logger
from models.estimate import ImpositionResult
from models.trim import PressSheet, TrimSize

logger = get_logger(__name__)

# Guards the division when a layout yields no pieces
_EPSILON = Decimal("0.000001")


def _to_decimal(value: float) -> Decimal:
    return Decimal(str(value))


def _grid(trim: TrimSize, sheet: PressSheet) -> Tuple[int, int]:
    """Pieces across width and height, using exact decimal division."""
    across_width = int(_to_decimal(sheet.working_width) // _to_decimal(trim.width))
    across_height = int(_to_decimal(sheet.working_height) // _to_decimal(trim.height))
    return max(across_width, 0), max(across_height, 0)


class ImpositionCalculator:
    """Computes items-per-sheet and sheets-needed for a trim size."""

    DEFAULT_WASTE_RATIO = 0.05

    # Catalog formats produced as whole or tiled press sheets.
    # Values below 1 mean several sheets per finished item.
    SHEET_RATIO_TABLE: Dict[str, float] = {
        "SRA3": 1.0,
        "A2": 0.5,
        "A1": 0.25,
        "A0": 0.125,
    }

    def __init__(
        self,
        waste_ratio: float = DEFAULT_WASTE_RATIO,
        allow_rotation: bool = False,
    ) -> None:
        if waste_ratio < 0:
            raise ValueError(f"waste_ratio must be >= 0, got {waste_ratio}")
        self.waste_ratio = waste_ratio
        self.allow_rotation = allow_rotation

    @classmethod
    def table_ratio(cls, format_name: Optional[str]) -> Optional[float]:
        """Items per sheet from the ratio table, or None for grid formats."""
        if not format_name:
            return None
        return cls.SHEET_RATIO_TABLE.get(format_name.upper())

    def is_feasible(self, trim: TrimSize, sheet: PressSheet) -> bool:
        """Whether the piece fits the working area at all."""
        if sheet.fits(trim):
            return True
        return self.allow_rotation and sheet.fits(trim.rotated)

    def check_feasibility(self, trim: TrimSize, sheet: PressSheet) -> None:
        """
        Raises:
            InfeasibleFormatError: the piece is larger than the working area
        """
        if not self.is_feasible(trim, sheet):
            raise InfeasibleFormatError(
                trim.width,
                trim.height,
                sheet.working_width,
                sheet.working_height,
                sheet.name,
            )

    def compute(
        self,
        trim: TrimSize,
        sheet: PressSheet,
        quantity: int,
        waste_ratio: Optional[float] = None,
        format_name: Optional[str] = None,
        roll: bool = False,
    ) -> ImpositionResult:
        """
        Lay out ``quantity`` pieces of ``trim`` on ``sheet``.

        Args:
            trim: Finished piece size
            sheet: Press sheet in use
            quantity: Number of printed pieces (>= 1)
            waste_ratio: Overrides the calculator default when given
            format_name: Catalog format name; enables the ratio table
            roll: Roll/continuous product, no sheet geometry

        Returns:
            ImpositionResult

        Raises:
            InfeasibleFormatError: piece does not fit (sheet products only)
            ValueError: quantity < 1
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError(f"quantity must be an integer >= 1, got {quantity!r}")

        waste = self.waste_ratio if waste_ratio is None else waste_ratio

        if roll:
            # One length segment per item; length costing is delegated
            return ImpositionResult(
                items_per_sheet=1.0,
                sheets_needed=quantity,
                waste_ratio=0.0,
                roll=True,
            )

        ratio = self.table_ratio(format_name)
        if ratio is not None:
            result = ImpositionResult(
                items_per_sheet=ratio,
                sheets_needed=self._sheets_needed(quantity, ratio, waste),
                waste_ratio=waste,
            )
            logger.debug(
                f"Imposition {format_name} x{quantity}: table ratio {ratio}, "
                f"{result.sheets_needed} sheets"
            )
            return result

        self.check_feasibility(trim, sheet)

        across_width, across_height = _grid(trim, sheet)
        rotated = False
        if self.allow_rotation:
            rot_width, rot_height = _grid(trim.rotated, sheet)
            if rot_width * rot_height > across_width * across_height:
                across_width, across_height = rot_width, rot_height
                rotated = True

        items = max(across_width * across_height, 0)
        result = ImpositionResult(
            items_per_sheet=float(items),
            sheets_needed=self._sheets_needed(quantity, items, waste),
            waste_ratio=waste,
            pieces_across_width=across_width,
            pieces_across_height=across_height,
            rotated=rotated,
        )
        logger.debug(
            f"Imposition {trim.label} on {sheet.name} x{quantity}: "
            f"{across_width}x{across_height}={items}/sheet, {result.sheets_needed} sheets"
            f"{' (rotated)' if rotated else ''}"
        )
        return result

    @staticmethod
    def _sheets_needed(quantity: int, items_per_sheet: float, waste_ratio: float) -> int:
        per_sheet = max(_to_decimal(items_per_sheet), _EPSILON)
        raw = Decimal(quantity) * (Decimal(1) + _to_decimal(waste_ratio)) / per_sheet
        return max(int(raw.to_integral_value(rounding=ROUND_CEILING)), 1)
