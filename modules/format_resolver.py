"""Format resolution: catalog tokens and free-form sizes to trim sizes."""

from __future__ import annotations

import math
import re
from typing import Any, Dict, Optional, Tuple

from core.exceptions import UnknownFormatError
from logging_config import get_logger
from models.trim import TrimSize

logger = get_logger(__name__)

# Standard finished sizes in mm (width, height)
FORMAT_CATALOG: Dict[str, Tuple[float, float]] = {
    "A6": (105, 148),
    "A5": (148, 210),
    "A4": (210, 297),
    "A3": (297, 420),
    "A2": (420, 594),
    "A1": (594, 841),
    "A0": (841, 1189),
    "SRA3": (320, 450),
    "DL": (99, 210),
    "C4": (229, 324),
    "C5": (162, 229),
    "C6": (114, 162),
    "EURO": (85, 55),
    "BUSINESS": (90, 50),
}

# "100x150", "100 x 150", "100×150", "100*150", "100 150" (Cyrillic "х" accepted)
_DIMENSION_RE = re.compile(
    r"^\s*(\d+(?:[.,]\d+)?)\s*(?:[x×*х]|\s)\s*(\d+(?:[.,]\d+)?)\s*$",
    re.IGNORECASE,
)


def parse_number(value: Any) -> Optional[float]:
    """Parse a positive finite number from a number or numeric string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "."))
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def parse_dimensions(text: Optional[str]) -> Optional[TrimSize]:
    """
    Parse a 'WxH' dimension string into a TrimSize.

    Returns None when the text is not a dimension string or either side is
    not a positive number.
    """
    if not text:
        return None
    match = _DIMENSION_RE.match(str(text))
    if not match:
        return None
    width = parse_number(match.group(1))
    height = parse_number(match.group(2))
    if width is None or height is None:
        return None
    return TrimSize(width, height)


def lookup_format(token: Optional[str]) -> Optional[TrimSize]:
    """Exact, case-insensitive catalog lookup."""
    if not token:
        return None
    size = FORMAT_CATALOG.get(token.strip().upper())
    if size is None:
        return None
    return TrimSize(float(size[0]), float(size[1]))


def resolve(
    format_token: Optional[str],
    custom_width: Any = None,
    custom_height: Any = None,
) -> TrimSize:
    """
    Resolve a job's trim size.

    Precedence:
        1. A custom width/height pair, when both parse as positive numbers
        2. A catalog token (A4, SRA3, ...), case-insensitive
        3. A token that is itself a dimension string ('100x150')

    Raises:
        UnknownFormatError: nothing above matched
    """
    width = parse_number(custom_width)
    height = parse_number(custom_height)
    if width is not None and height is not None:
        return TrimSize(width, height)

    trim = lookup_format(format_token)
    if trim is not None:
        return trim

    trim = parse_dimensions(format_token)
    if trim is not None:
        return trim

    logger.debug(f"Unknown format token: {format_token!r}")
    raise UnknownFormatError(format_token)


def format_name_for(trim: TrimSize) -> Optional[str]:
    """Catalog name whose size matches ``trim`` within 1 mm, if any."""
    for name, (width, height) in FORMAT_CATALOG.items():
        if trim.matches(TrimSize(float(width), float(height))):
            return name
    return None


def display_name(trim: TrimSize) -> str:
    """Catalog name for ``trim`` or its 'W×H' label."""
    return format_name_for(trim) or trim.label
