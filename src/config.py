from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

from pydantic import validator
from pydantic_settings import BaseSettings

from src.utils.constants import BSC_CONTRACTS, BSC_TOKENS


class Settings(BaseSettings):
    # Database
    DB_USER: str = "user"
    DB_PASSWORD: str = "password"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "bsc_indexer"
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 5

    @validator("DATABASE_URL", pre=True, always=True)
    def assemble_db_connection(cls, v: Optional[str], values: Dict[str, Any]) -> Any:
        if isinstance(v, str) and v:
            return v
        return (
            f"postgresql+psycopg2://{values.get('DB_USER')}:{values.get('DB_PASSWORD')}@"
            f"{values.get('DB_HOST')}:{values.get('DB_PORT')}/{values.get('DB_NAME')}"
        )

    # Chain RPC
    RPC_ENDPOINT: Optional[str] = None
    RPC_TIMEOUT: int = 20  # seconds
    RPC_MAX_RETRIES: int = 2
    CHAIN_NAME: str = "bsc"

    # Indexing
    TRACKING_PROFILE: str = "default"  # default | defi | tokens
    TRACKED_TOKENS: str = ""  # comma-separated, used by the "tokens" profile
    LARGE_TRANSFER_THRESHOLD: int = 100  # whole native units
    POLL_INTERVAL_MS: int = 2000
    RECEIPT_FETCH_WORKERS: int = 16
    RESUME_FROM_PERSISTED_CURSOR: bool = True

    # Error handling
    MAX_RECONNECT_ATTEMPTS: int = 5
    RECONNECT_DELAY_MS: int = 5000

    # Monitoring
    LOG_LEVEL: str = "INFO"
    STATS_LOG_INTERVAL: int = 100  # blocks

    @validator("TRACKING_PROFILE")
    def validate_profile(cls, v: str) -> str:
        profile = v.strip().lower()
        if profile not in ("default", "defi", "tokens"):
            raise ValueError(f"Unknown tracking profile: {v}")
        return profile

    @validator("LARGE_TRANSFER_THRESHOLD", "POLL_INTERVAL_MS", "RECONNECT_DELAY_MS")
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()


@dataclass
class IndexerConfig:
    """What the block processor tracks and how often the poller ticks"""

    tracked_contracts: List[str] = field(default_factory=list)
    tracked_tokens: List[str] = field(default_factory=list)
    large_transfer_threshold: int = 100
    poll_interval_ms: int = 2000


def _split_addresses(raw: str) -> List[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def create_default_config(source: Settings = None) -> IndexerConfig:
    source = source or settings
    return IndexerConfig(
        tracked_contracts=list(BSC_CONTRACTS.values()),
        tracked_tokens=[BSC_TOKENS["USDT"], BSC_TOKENS["BUSD"], BSC_TOKENS["WBNB"]],
        large_transfer_threshold=source.LARGE_TRANSFER_THRESHOLD,
        poll_interval_ms=source.POLL_INTERVAL_MS,
    )


def create_defi_config(source: Settings = None) -> IndexerConfig:
    source = source or settings
    return IndexerConfig(
        tracked_contracts=[
            BSC_CONTRACTS["PANCAKESWAP_V2_ROUTER"],
            BSC_CONTRACTS["PANCAKESWAP_V3_ROUTER"],
            BSC_CONTRACTS["ONEINCH_ROUTER"],
            BSC_CONTRACTS["BISWAP_ROUTER"],
        ],
        tracked_tokens=list(BSC_TOKENS.values()),
        large_transfer_threshold=source.LARGE_TRANSFER_THRESHOLD,
        poll_interval_ms=source.POLL_INTERVAL_MS,
    )


def create_token_config(tokens: List[str], source: Settings = None) -> IndexerConfig:
    source = source or settings
    return IndexerConfig(
        tracked_contracts=[],
        tracked_tokens=list(tokens),
        large_transfer_threshold=source.LARGE_TRANSFER_THRESHOLD,
        poll_interval_ms=source.POLL_INTERVAL_MS,
    )


def build_indexer_config(source: Settings = None, profile: Optional[str] = None) -> IndexerConfig:
    """Select the tracking preset named by TRACKING_PROFILE (or an explicit override)."""
    source = source or settings
    profile = (profile or source.TRACKING_PROFILE).lower()

    if profile == "defi":
        return create_defi_config(source)
    if profile == "tokens":
        return create_token_config(_split_addresses(source.TRACKED_TOKENS), source)
    if profile == "default":
        return create_default_config(source)
    raise ValueError(f"Unknown tracking profile: {profile}")
