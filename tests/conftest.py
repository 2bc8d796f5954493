import pytest
from eth_abi import encode

from src.database.connection import build_engine, build_session_factory, init_db
from src.models.base import Base
from src.services.persistence import PersistenceGateway
from src.utils.constants import (
    ERC20_TRANSFER_TOPIC,
    PANCAKE_V2_SWAP_TOPIC,
    PANCAKE_V3_SWAP_TOPIC,
    REVERT_REASON_SELECTOR,
)

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
ROUTER = "0x10ed43c718714eb63d5aa57b78b54704e256024e"
TOKEN = "0x55d398326f99059ff775485246999027b3197955"


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    import logging
    import structlog

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(),
    )

    root_logger = logging.getLogger()
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path}/test.db")
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    db = build_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def gateway(db_session):
    return PersistenceGateway(db_session)


@pytest.fixture
def no_sleep(monkeypatch):
    monkeypatch.setattr("time.sleep", lambda seconds: None)


# --- raw chain data builders ---


def address_topic(address):
    return "0x" + encode(["address"], [address]).hex()


def abi_data(types, values):
    return "0x" + encode(types, values).hex()


def transfer_log(token, sender, recipient, amount, log_index=0):
    return {
        "address": token,
        "topics": [ERC20_TRANSFER_TOPIC, address_topic(sender), address_topic(recipient)],
        "data": abi_data(["uint256"], [amount]),
        "logIndex": log_index,
    }


def v2_swap_log(pair, sender, recipient, amounts=(1, 0, 0, 2), log_index=0):
    return {
        "address": pair,
        "topics": [PANCAKE_V2_SWAP_TOPIC, address_topic(sender), address_topic(recipient)],
        "data": abi_data(["uint256", "uint256", "uint256", "uint256"], list(amounts)),
        "logIndex": log_index,
    }


def v3_swap_log(pool, sender, recipient, fields=(-5, 7, 2**96, 10**18, -120), log_index=0):
    return {
        "address": pool,
        "topics": [PANCAKE_V3_SWAP_TOPIC, address_topic(sender), address_topic(recipient)],
        "data": abi_data(["int256", "int256", "uint160", "uint128", "int24"], list(fields)),
        "logIndex": log_index,
    }


def revert_calldata(reason):
    return REVERT_REASON_SELECTOR + encode(["string"], [reason]).hex()


def make_tx(tx_hash, block_number, sender=ALICE, to=BOB, value=0, data="0x", nonce=0):
    return {
        "hash": tx_hash,
        "blockNumber": block_number,
        "from": sender,
        "to": to,
        "value": value,
        "gasPrice": 3 * 10**9,
        "input": data,
        "nonce": nonce,
    }


def make_receipt(tx, status=1, logs=(), gas_used=21000):
    return {
        "transactionHash": tx["hash"],
        "blockNumber": tx["blockNumber"],
        "status": status,
        "gasUsed": gas_used,
        "logs": list(logs),
    }


def tx_hash(n):
    return "0x%064x" % n


class FakeChain:
    """In-memory stand-in for ChainRPCService."""

    def __init__(self, tip=0):
        self.tip = tip
        self.blocks = {}
        self.transactions = {}
        self.receipts = {}
        self.block_requests = []
        self.tip_errors = []
        self.block_errors = {}
        self.receipt_errors = {}

    def add_block(self, height, txs=(), receipts=()):
        self.blocks[height] = {
            "number": height,
            "hash": "0x%064x" % (10**6 + height),
            "timestamp": 1700000000 + height * 3,
            "transactions": [dict(tx) for tx in txs],
        }
        for tx in txs:
            self.transactions[tx["hash"]] = tx
        for receipt in receipts:
            self.receipts[receipt["transactionHash"]] = receipt
        self.tip = max(self.tip, height)

    def add_empty_blocks(self, first, last):
        for height in range(first, last + 1):
            self.add_block(height)

    def get_block_number(self):
        if self.tip_errors:
            raise self.tip_errors.pop(0)
        return self.tip

    def get_block(self, height, full_transactions=True):
        self.block_requests.append(height)
        if height in self.block_errors:
            raise self.block_errors.pop(height)
        return self.blocks.get(height)

    def get_transaction_receipt(self, tx_hash):
        if tx_hash in self.receipt_errors:
            raise self.receipt_errors[tx_hash]
        return self.receipts.get(tx_hash)

    def get_transaction(self, tx_hash):
        return self.transactions.get(tx_hash)

    def close(self):
        pass


@pytest.fixture
def fake_chain():
    return FakeChain()
