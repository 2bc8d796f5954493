"""
Tests for log classification and revert reason decoding.
"""

from eth_abi import encode
from eth_utils import to_checksum_address

from conftest import ALICE, BOB, TOKEN, abi_data, address_topic, revert_calldata, transfer_log, v2_swap_log, v3_swap_log
from src.services.classifier import (
    DecodedTransfer,
    DecodedV2Swap,
    DecodedV3Swap,
    EventKind,
    classify_log,
    decode_revert_reason,
    decode_transfer_log,
    decode_v2_swap_log,
    decode_v3_swap_log,
)
from src.utils.constants import ERC20_TRANSFER_TOPIC, PANCAKE_V2_SWAP_TOPIC, event_topic


class TestClassifyLog:
    def test_transfer_topic_constant(self):
        assert ERC20_TRANSFER_TOPIC == "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"
        assert event_topic("Transfer(address,address,uint256)") == ERC20_TRANSFER_TOPIC

    def test_v2_swap_topic_constant(self):
        assert PANCAKE_V2_SWAP_TOPIC == "0xd78ad95fa46c994b6551d0da85fc275fe613ce37657fb8d5e3d130840159d822"

    def test_decode_transfer(self):
        event = classify_log(transfer_log(TOKEN, ALICE, BOB, 1_000_000))

        assert isinstance(event, DecodedTransfer)
        assert event.kind == EventKind.TRANSFER
        assert event.from_address == to_checksum_address(ALICE)
        assert event.to_address == to_checksum_address(BOB)
        assert event.amount == 1_000_000

    def test_decode_transfer_max_uint256(self):
        event = decode_transfer_log(transfer_log(TOKEN, ALICE, BOB, 2**256 - 1))
        assert event.amount == 2**256 - 1

    def test_uppercase_topic_matches(self):
        log = transfer_log(TOKEN, ALICE, BOB, 5)
        log["topics"][0] = log["topics"][0].upper().replace("0X", "0x")
        assert decode_transfer_log(log).amount == 5

    def test_bytes_topics_accepted(self):
        log = transfer_log(TOKEN, ALICE, BOB, 5)
        log["topics"] = [bytes.fromhex(topic[2:]) for topic in log["topics"]]
        assert decode_transfer_log(log).amount == 5

    def test_unknown_topic_is_no_match(self):
        log = transfer_log(TOKEN, ALICE, BOB, 5)
        log["topics"][0] = "0x" + "00" * 32
        assert classify_log(log) is None

    def test_wrong_topic_count_is_no_match(self):
        log = transfer_log(TOKEN, ALICE, BOB, 5)
        # ERC721 Transfer has the same topic-0 but indexes the token id
        log["topics"].append(address_topic(ALICE))
        assert classify_log(log) is None

        log["topics"] = log["topics"][:2]
        assert classify_log(log) is None

    def test_empty_topics_is_no_match(self):
        assert classify_log({"topics": [], "data": "0x"}) is None
        assert classify_log({}) is None

    def test_malformed_data_is_no_match(self):
        log = transfer_log(TOKEN, ALICE, BOB, 5)
        log["data"] = "0x1234"
        assert classify_log(log) is None

        log["data"] = "0xnothex"
        assert classify_log(log) is None

    def test_expected_kind_filters(self):
        log = transfer_log(TOKEN, ALICE, BOB, 5)
        assert decode_v2_swap_log(log) is None
        assert decode_v3_swap_log(log) is None

    def test_decode_v2_swap(self):
        event = classify_log(v2_swap_log(TOKEN, ALICE, BOB, amounts=(10, 0, 0, 20)))

        assert isinstance(event, DecodedV2Swap)
        assert event.kind == EventKind.V2_SWAP
        assert event.sender == to_checksum_address(ALICE)
        assert event.to == to_checksum_address(BOB)
        assert (event.amount0_in, event.amount1_in, event.amount0_out, event.amount1_out) == (10, 0, 0, 20)

    def test_v2_swap_short_data_is_no_match(self):
        log = v2_swap_log(TOKEN, ALICE, BOB)
        log["data"] = abi_data(["uint256", "uint256"], [1, 2])
        assert classify_log(log) is None

    def test_decode_v3_swap_signed_fields(self):
        event = classify_log(v3_swap_log(TOKEN, ALICE, BOB, fields=(-5, 7, 2**96, 10**18, -120)))

        assert isinstance(event, DecodedV3Swap)
        assert event.kind == EventKind.V3_SWAP
        assert event.recipient == to_checksum_address(BOB)
        assert event.amount0 == -5
        assert event.amount1 == 7
        assert event.sqrt_price_x96 == 2**96
        assert event.liquidity == 10**18
        assert event.tick == -120


class TestDecodeRevertReason:
    def test_standard_revert_string(self):
        assert decode_revert_reason(revert_calldata("INSUFFICIENT_OUTPUT_AMOUNT")) == "INSUFFICIENT_OUTPUT_AMOUNT"

    def test_uppercase_selector(self):
        data = revert_calldata("EXPIRED").upper().replace("0X", "0x")
        assert decode_revert_reason(data) == "EXPIRED"

    def test_other_selector_is_none(self):
        data = "0xa9059cbb" + encode(["address", "uint256"], [BOB, 1]).hex()
        assert decode_revert_reason(data) is None

    def test_empty_calldata_is_none(self):
        assert decode_revert_reason(None) is None
        assert decode_revert_reason("") is None
        assert decode_revert_reason("0x") is None

    def test_truncated_payload_is_none(self):
        assert decode_revert_reason("0x08c379a0") is None
        assert decode_revert_reason(revert_calldata("EXPIRED")[:40]) is None
