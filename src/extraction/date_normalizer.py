"""Date normalization to ISO ``YYYY-MM-DD``.

Indian identity documents print dates day-first (``15/08/1990``); some
scans and re-issued cards use year-first. The 4-digit group decides
which shape a date has.
"""

import re
from dataclasses import dataclass

from src.utils.logger import get_logger

logger = get_logger(__name__)

_DAY_FIRST = re.compile(r"(\d{2})[/\-](\d{2})[/\-](\d{4})")
_YEAR_FIRST = re.compile(r"(\d{4})[/\-](\d{2})[/\-](\d{2})")


@dataclass(frozen=True)
class DateParse:
    """Outcome of date normalization.

    ``normalized`` is ``False`` when no date shape matched and ``value``
    is the input unchanged.
    """

    value: str
    normalized: bool


def parse_date(text: str) -> DateParse:
    """Normalize the first recognizable date in ``text``.

    Args:
        text: Text containing a ``DD/MM/YYYY`` or ``YYYY/MM/DD`` date,
            with ``/`` or ``-`` separators.

    Returns:
        The ISO date and ``normalized=True``, or the input and
        ``normalized=False`` if no date shape matched.
    """
    match = _DAY_FIRST.search(text)
    if match:
        day, month, year = match.groups()
        return DateParse(f"{year}-{month}-{day}", True)

    match = _YEAR_FIRST.search(text)
    if match:
        year, month, day = match.groups()
        return DateParse(f"{year}-{month}-{day}", True)

    logger.debug("Could not normalize date: %r", text)
    return DateParse(text, False)


def normalize_date(text: str) -> str:
    """Return ``text`` as ``YYYY-MM-DD``, or unchanged if it is not a date."""
    return parse_date(text).value
