from __future__ import annotations

import logging

import structlog


def configure_logging(level: str = "INFO") -> structlog.typing.WrappedLogger:
    level_no = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level_no)
    logging.getLogger().setLevel(level_no)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
    )
    return structlog.get_logger()


# Reconfigured from Settings.log_level by app.main at startup
log = configure_logging()
