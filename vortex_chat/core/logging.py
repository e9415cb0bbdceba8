import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Client libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "mcp.client.streamable_http", "openai")


def configure_logging(log_level: str) -> None:
    """Configure process-wide logging for the chat backend.

    Transport-level loggers of the HTTP and MCP clients are held at WARNING
    unless the service itself runs at DEBUG.
    """

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("vortex_chat").setLevel(level)

    quiet_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
