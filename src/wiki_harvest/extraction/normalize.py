# ABOUTME: Scalar normalization for stringly-typed wiki values
# ABOUTME: Handles thousands separators, percentages, the "-" placeholder and per-level curves

import math
import re
from collections.abc import Sequence

from wiki_harvest.core.errors import UnrecognizedValueError
from wiki_harvest.core.models import CURVE_LENGTH

PLACEHOLDER = "-"

_TAG_PATTERN = re.compile(r"<[^>]*>")
_NUMBER_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_THOUSANDS_SEPARATORS = str.maketrans("", "", ",，")
_PERCENT_SIGNS = ("%", "％")


def strip_tags(text: str) -> str:
    """Remove inline HTML tags the wiki wraps around values."""
    return _TAG_PATTERN.sub("", text)


def normalize_scalar(raw: object) -> float:
    """Convert a raw wiki value into a number.

    "1,234" -> 1234, "5%" -> 5, "-" -> 0. Anything else that is not a plain
    number raises UnrecognizedValueError.
    """
    if isinstance(raw, bool):
        raise UnrecognizedValueError(raw)

    if isinstance(raw, int | float):
        if not math.isfinite(raw):
            raise UnrecognizedValueError(raw)
        return float(raw)

    if not isinstance(raw, str):
        raise UnrecognizedValueError(raw)

    value = strip_tags(raw).strip()
    if value == PLACEHOLDER:
        return 0.0

    value = value.translate(_THOUSANDS_SEPARATORS)
    if value.endswith(_PERCENT_SIGNS):
        value = value[:-1].rstrip()

    if not _NUMBER_PATTERN.fullmatch(value):
        raise UnrecognizedValueError(raw)
    return float(value)


def normalize_scalar_or_default(raw: object, default: float = 0.0) -> tuple[float, bool]:
    """Like normalize_scalar, but returns (default, False) for unrecognized input."""
    try:
        return normalize_scalar(raw), True
    except UnrecognizedValueError:
        return default, False


def map_level_curve(values: Sequence[object]) -> list[float]:
    """Normalize one per-level curve; it must hold exactly one value per ascension level."""
    if len(values) != CURVE_LENGTH:
        raise ValueError(f"Expected {CURVE_LENGTH} level values, got {len(values)}")
    return [normalize_scalar(value) for value in values]
