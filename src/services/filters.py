"""
Stateless transaction predicates.
"""

from typing import Any, Dict, Iterable, Optional

from src.utils.amounts import parse_quantity, to_base_units, to_display_units
from src.utils.constants import EMPTY_CALLDATA


def _normalize_addresses(addresses: Iterable[str]) -> frozenset:
    return frozenset(address.lower() for address in addresses if address)


class TransactionFilters:
    """Predicates over a transaction's public fields (value, input, to)"""

    @staticmethod
    def is_native_transfer(tx: Dict[str, Any]) -> bool:
        """True when the transaction carries no calldata, i.e. a plain native-coin send."""
        data = tx.get("input")
        return data is None or data == "" or data == EMPTY_CALLDATA

    @staticmethod
    def threshold_in_base_units(threshold: int) -> int:
        return to_base_units(int(threshold))

    @staticmethod
    def is_large_transfer(tx: Dict[str, Any], threshold: int = 100) -> bool:
        """
        True when value >= threshold whole units.

        Comparison is done on integer base units only.
        """
        value = parse_quantity(tx.get("value")) or 0
        return value >= TransactionFilters.threshold_in_base_units(threshold)

    @staticmethod
    def is_known_contract(tx: Dict[str, Any], contracts: Iterable[str]) -> bool:
        to_address = tx.get("to")
        if not to_address:
            return False
        return to_address.lower() in _normalize_addresses(contracts)

    @staticmethod
    def is_tracked_token(token_address: Optional[str], tracked_tokens: Iterable[str]) -> bool:
        """An empty allow-list tracks every token."""
        tracked = _normalize_addresses(tracked_tokens)
        if not tracked:
            return True
        return bool(token_address) and token_address.lower() in tracked

    @staticmethod
    def to_display_units(wei) -> float:
        return to_display_units(wei)

    @staticmethod
    def extract_native_amount(tx: Dict[str, Any]) -> Optional[float]:
        value = parse_quantity(tx.get("value")) or 0
        if value == 0:
            return None
        return to_display_units(value)
