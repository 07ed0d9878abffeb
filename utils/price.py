"""Price Text Parser"""
import logging
import re
from typing import Iterable, Optional, Union

from utils.assertions import CheckFailedError

logger = logging.getLogger(__name__)

Number = Union[int, float]

# 第一段连续数字，最多一个小数点；没有前导数字的点（如 "Rs."）不算
_PRICE_TOKEN = re.compile(r"\d+(?:\.\d*)?")
_GROUPING = ","


def parse_price(text: Optional[str]) -> Optional[float]:
    """
    Extract a price from free text.

    Thousands separators are removed first, then the first run of digits
    (with at most one decimal point) is parsed. Returns None when the text has
    no numeric token; never raises.

    >>> parse_price("PKR 1,299")
    1299.0
    >>> parse_price("Free") is None
    True
    """
    if not text:
        return None
    match = _PRICE_TOKEN.search(str(text).replace(_GROUPING, ""))
    if match is None:
        return None
    try:
        return float(match.group())
    except ValueError:
        return None


def assert_prices_in_range(prices: Iterable[Optional[Number]], low: Number, high: Number) -> int:
    """
    Hard-check that every known price lies in [low, high].

    Unknown prices (None) are skipped. Returns how many prices were checked,
    so callers can tell "all in range" from "nothing to check".

    Raises:
        CheckFailedError: first price found outside the range
    """
    checked = 0
    for price in prices:
        if price is None:
            continue
        if not low <= price <= high:
            raise CheckFailedError(
                f"Price {price} outside range [{low}, {high}]",
                expected=f"{low}..{high}",
                actual=price,
                check="price_in_range",
            )
        checked += 1
    if checked == 0:
        logger.warning("No parsable prices to validate against [%s, %s]", low, high)
    return checked
