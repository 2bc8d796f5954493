"""
Main entry point for the BSC block indexer.
"""

import signal
from typing import Optional

import structlog

from .config import settings, build_indexer_config
from .database.connection import build_engine, build_session_factory, init_db
from .services.block_processor import BlockProcessor
from .services.chain_rpc import ChainRPCService
from .services.error_handler import ErrorHandler
from .services.monitoring import MonitoringService
from .services.persistence import PersistenceGateway
from .services.poller import PollScheduler
from .utils.exceptions import ConfigurationError, MaxReconnectAttemptsExceeded
from .utils.logging import setup_logging


def install_signal_handlers(poller: PollScheduler) -> None:
    """SIGINT/SIGTERM stop the poller; the current block finishes before the loop exits."""
    logger = structlog.get_logger()

    def _handle_signal(signum, frame):
        logger.info("Shutdown signal received", signal=signal.Signals(signum).name)
        poller.stop()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)


def main(debug: bool = False, profile: Optional[str] = None, start_height: Optional[int] = None) -> int:
    """Main application entry point. Returns the process exit code."""
    setup_logging("DEBUG" if debug else settings.LOG_LEVEL)

    logger = structlog.get_logger()
    logger.info(
        "Starting BSC indexer",
        chain=settings.CHAIN_NAME,
        profile=profile or settings.TRACKING_PROFILE,
        poll_interval_ms=settings.POLL_INTERVAL_MS,
        max_reconnect_attempts=settings.MAX_RECONNECT_ATTEMPTS,
    )

    try:
        rpc = ChainRPCService(rpc_url=settings.RPC_ENDPOINT)
        indexer_config = build_indexer_config(settings, profile)
    except (ConfigurationError, ValueError) as e:
        logger.error("Invalid configuration", error=str(e))
        return 1

    engine = build_engine(settings.DATABASE_URL, settings.DB_POOL_SIZE)
    gateway = None

    try:
        init_db(engine)
        session_factory = build_session_factory(engine)
        gateway = PersistenceGateway(session_factory())

        error_handler = ErrorHandler()
        processor = BlockProcessor(gateway, rpc, indexer_config, error_handler=error_handler)
        poller = PollScheduler(
            rpc,
            processor,
            gateway,
            poll_interval_ms=indexer_config.poll_interval_ms,
            error_handler=error_handler,
            monitoring=MonitoringService(),
        )

        install_signal_handlers(poller)
        poller.start(start_height=start_height)
        return 0

    except MaxReconnectAttemptsExceeded as e:
        logger.critical("Max reconnection attempts reached. Exiting", error=str(e))
        return 1
    except Exception as e:
        logger.error("Unhandled exception", error=str(e), exc_info=True)
        return 1
    finally:
        if gateway is not None:
            gateway.close()
        rpc.close()
        engine.dispose()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    raise SystemExit(main())
