"""
Base-unit amount helpers.
Persisted and compared amounts are Python ints (uint256 range) serialized as decimal strings.
"""

from typing import Optional, Union

NATIVE_DECIMALS = 18
WEI_PER_UNIT = 10**NATIVE_DECIMALS
UINT256_MAX = 2**256 - 1


def to_base_units(whole_units: int, decimals: int = NATIVE_DECIMALS) -> int:
    """Convert an integer amount of whole units into base units"""
    if isinstance(whole_units, bool) or not isinstance(whole_units, int):
        raise ValueError(f"Invalid whole-unit amount: {whole_units!r}")
    if whole_units < 0:
        raise ValueError(f"Negative amount: {whole_units}")
    return whole_units * 10**decimals


def to_display_units(base_units: Union[int, str], decimals: int = NATIVE_DECIMALS) -> float:
    """Lossy float conversion for logs only. Never use it for comparisons or storage."""
    return int(base_units) / 10**decimals


def parse_quantity(value) -> Optional[int]:
    """Accept an int, a 0x-prefixed hex quantity or a decimal string."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid quantity: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            return int(text, 16) if len(text) > 2 else 0
        return int(text)
    raise ValueError(f"Invalid quantity: {value!r}")


def to_decimal_string(value) -> Optional[str]:
    """Serialize a quantity for persistence"""
    amount = parse_quantity(value)
    if amount is None:
        return None
    if amount < 0 or amount > UINT256_MAX:
        raise ValueError(f"Amount out of uint256 range: {amount}")
    return str(amount)
