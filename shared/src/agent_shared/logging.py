import logging
import sys

import structlog


def configure_logging(log_format: str = "console", log_level: str = "INFO") -> None:
    """Configure structlog for the vision pipeline and its host process.

    Args:
        log_format: "console" for human-readable output, "json" for one JSON
            object per line (for log shippers).
        log_level: Standard Python log level string (DEBUG, INFO, WARNING, ERROR).
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    shared_processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    # Per-frame debug lines go to stderr so stdout stays free for the host app
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(level)


def bind_frame(frame_seq: int) -> None:
    """Attach the current frame number to every log line until unbound."""
    structlog.contextvars.bind_contextvars(frame_seq=frame_seq)


def unbind_frame() -> None:
    structlog.contextvars.unbind_contextvars("frame_seq")


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structlog logger bound to the given name."""
    return structlog.get_logger(name)
