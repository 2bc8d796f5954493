"""
Event classification for raw EVM logs.

A log is matched by exact topic-0 lookup in a table of decoders, then decoded
structurally: indexed fields come from topics in declaration order, the rest
is ABI-decoded from the data payload. Every failure mode collapses to None.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from eth_abi import decode as abi_decode
from eth_utils import to_checksum_address

from src.utils.constants import (
    ERC20_TRANSFER_TOPIC,
    PANCAKE_V2_SWAP_TOPIC,
    PANCAKE_V3_SWAP_TOPIC,
    REVERT_REASON_SELECTOR,
)


class EventKind(Enum):
    TRANSFER = "transfer"
    V2_SWAP = "v2_swap"
    V3_SWAP = "v3_swap"


@dataclass(frozen=True)
class DecodedTransfer:
    from_address: str
    to_address: str
    amount: int

    kind = EventKind.TRANSFER


@dataclass(frozen=True)
class DecodedV2Swap:
    sender: str
    to: str
    amount0_in: int
    amount1_in: int
    amount0_out: int
    amount1_out: int

    kind = EventKind.V2_SWAP


@dataclass(frozen=True)
class DecodedV3Swap:
    sender: str
    recipient: str
    amount0: int
    amount1: int
    sqrt_price_x96: int
    liquidity: int
    tick: int

    kind = EventKind.V3_SWAP


DecodedEvent = Union[DecodedTransfer, DecodedV2Swap, DecodedV3Swap]


def _to_bytes(value: Union[str, bytes, None]) -> bytes:
    if value is None:
        raise ValueError("missing hex value")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    text = value[2:] if value[:2].lower() == "0x" else value
    return bytes.fromhex(text)


def _topics(log: Dict[str, Any]) -> List[str]:
    topics = log.get("topics") or []
    return [
        "0x" + bytes(topic).hex() if isinstance(topic, (bytes, bytearray)) else str(topic).lower()
        for topic in topics
    ]


def _topic_address(topic: str) -> str:
    (address,) = abi_decode(["address"], _to_bytes(topic))
    return to_checksum_address(address)


def _decode_transfer(topics: Sequence[str], data: bytes) -> DecodedTransfer:
    (amount,) = abi_decode(["uint256"], data)
    return DecodedTransfer(
        from_address=_topic_address(topics[1]),
        to_address=_topic_address(topics[2]),
        amount=amount,
    )


def _decode_v2_swap(topics: Sequence[str], data: bytes) -> DecodedV2Swap:
    amount0_in, amount1_in, amount0_out, amount1_out = abi_decode(
        ["uint256", "uint256", "uint256", "uint256"], data
    )
    return DecodedV2Swap(
        sender=_topic_address(topics[1]),
        to=_topic_address(topics[2]),
        amount0_in=amount0_in,
        amount1_in=amount1_in,
        amount0_out=amount0_out,
        amount1_out=amount1_out,
    )


def _decode_v3_swap(topics: Sequence[str], data: bytes) -> DecodedV3Swap:
    amount0, amount1, sqrt_price_x96, liquidity, tick = abi_decode(
        ["int256", "int256", "uint160", "uint128", "int24"], data
    )
    return DecodedV3Swap(
        sender=_topic_address(topics[1]),
        recipient=_topic_address(topics[2]),
        amount0=amount0,
        amount1=amount1,
        sqrt_price_x96=sqrt_price_x96,
        liquidity=liquidity,
        tick=tick,
    )


@dataclass(frozen=True)
class EventDecoder:
    kind: EventKind
    topic_count: int
    decode: Callable[[Sequence[str], bytes], DecodedEvent]


# topic-0 -> decoder
EVENT_DECODERS: Dict[str, EventDecoder] = {
    ERC20_TRANSFER_TOPIC: EventDecoder(EventKind.TRANSFER, 3, _decode_transfer),
    PANCAKE_V2_SWAP_TOPIC: EventDecoder(EventKind.V2_SWAP, 3, _decode_v2_swap),
    PANCAKE_V3_SWAP_TOPIC: EventDecoder(EventKind.V3_SWAP, 3, _decode_v3_swap),
}


def classify_log(log: Dict[str, Any], expected: Optional[EventKind] = None) -> Optional[DecodedEvent]:
    """
    Decode a raw log into one of the known event kinds.

    Args:
        log: Mapping with "topics" (list of 0x-hex strings) and "data" (0x-hex)
        expected: Only accept this kind when given

    Returns:
        The decoded event, or None when the log does not match a known shape
    """
    try:
        topics = _topics(log)
        if not topics:
            return None

        decoder = EVENT_DECODERS.get(topics[0])
        if decoder is None:
            return None
        if expected is not None and decoder.kind != expected:
            return None
        if len(topics) != decoder.topic_count:
            return None

        return decoder.decode(topics, _to_bytes(log.get("data") or "0x"))
    except Exception:
        return None


def decode_transfer_log(log: Dict[str, Any]) -> Optional[DecodedTransfer]:
    return classify_log(log, EventKind.TRANSFER)


def decode_v2_swap_log(log: Dict[str, Any]) -> Optional[DecodedV2Swap]:
    return classify_log(log, EventKind.V2_SWAP)


def decode_v3_swap_log(log: Dict[str, Any]) -> Optional[DecodedV3Swap]:
    return classify_log(log, EventKind.V3_SWAP)


def decode_revert_reason(data: Optional[str]) -> Optional[str]:
    """
    Extract the message from Error(string)-encoded data.

    Anything without the 0x08c379a0 selector, and any malformed payload, yields None.
    """
    try:
        if not data or len(data) <= 2:
            return None
        if not data.lower().startswith(REVERT_REASON_SELECTOR):
            return None

        (reason,) = abi_decode(["string"], _to_bytes("0x" + data[len(REVERT_REASON_SELECTOR):]))
        return reason
    except Exception:
        return None
