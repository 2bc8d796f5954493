import structlog
import logging


def setup_logging(level: str = "INFO"):
    """Setup structured logging configuration"""
    log_level = getattr(logging, str(level).upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )


def short_hash(value: str, length: int = 10) -> str:
    """Shorten a hash or address for log lines"""
    if not value:
        return ""
    return value if len(value) <= length else f"{value[:length]}..."
