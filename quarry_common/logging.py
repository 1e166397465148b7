#!/usr/bin/env python3
"""
Quarry Logging - structlog on top of the stdlib "quarry" logger.

Every module asks for a component logger:

    logger = get_bound_logger("dispatcher")
    logger.info("command.scheduled", method="listIndexes")

Context bound with operation_context()/command_context() lives in
contextvars, so it follows a command into the asyncio task that runs it and
shows up on every line that task logs.
"""

import logging
import sys
import time
import uuid
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

LOGGER_NAME = "quarry"

_configured = False


def configure_structlog(
    log_level: str = "INFO",
    log_format: str = "console",
    log_file: Optional[Path] = None,
    force: bool = False
) -> None:
    """
    Route structlog events through the stdlib "quarry" logger.

    Only the "quarry" logger gets a handler; the host application's root
    logger is left alone. The first call wins unless force is set.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_format: "console" or "json"
        log_file: Append to this file instead of writing to stdout
        force: Replace an existing configuration
    """
    global _configured
    if _configured and not force:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(str(log_file), mode='a')
    else:
        handler = logging.StreamHandler(sys.stdout)

    renderer = (structlog.processors.JSONRenderer() if log_format == "json"
                else structlog.dev.ConsoleRenderer(colors=False))
    pre_chain = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.add_log_level,
        structlog.contextvars.merge_contextvars,
    ]
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=pre_chain,
    ))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    quarry_logger = logging.getLogger(LOGGER_NAME)
    for existing in list(quarry_logger.handlers):
        quarry_logger.removeHandler(existing)
    quarry_logger.addHandler(handler)
    quarry_logger.setLevel(level)
    quarry_logger.propagate = False

    _configured = True


def get_bound_logger(component: str, **default_context):
    """
    Get a logger tagged with its component name.

    If neither the application nor Quarry configured structlog yet, configures
    it from QuarryConfig (QUARRY_LOG_LEVEL, QUARRY_LOG_FORMAT, QUARRY_LOG_FILE).
    An existing structlog configuration is never replaced. The logger is lazy:
    it resolves the configuration active at its first log call.

    Args:
        component: Component name, e.g. "dispatcher" or "client"
        **default_context: Extra key/values bound to this logger

    Returns:
        A lazy structlog logger proxy
    """
    if not _configured and not structlog.is_configured():
        from .config import config
        configure_structlog(log_level=config.get_log_level(),
                            log_format=config.log_format,
                            log_file=config.log_file)

    return structlog.get_logger(LOGGER_NAME, component=component, **default_context)


@contextmanager
def operation_context(**context):
    """Bind context vars for the duration of a block."""
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        if context:
            structlog.contextvars.unbind_contextvars(*context)


@asynccontextmanager
async def command_context(command_name: str, parameters: Optional[Dict[str, Any]] = None,
                          command_id: Optional[str] = None):
    """
    Bind command identity for the duration of a command and log its timing.

    Yields:
        The command id (generated when not given)
    """
    started = time.monotonic()
    command_id = command_id or f"cmd_{uuid.uuid4().hex[:8]}"

    context = {"command_name": command_name, "command_id": command_id}
    if parameters:
        # Summary only; batch payloads can be large
        context["parameter_count"] = len(parameters)
        if "index_name" in parameters:
            context["index_name"] = parameters["index_name"]

    with operation_context(**context):
        try:
            yield command_id
        finally:
            structlog.get_logger(LOGGER_NAME).info(
                "command.completed",
                duration_ms=round((time.monotonic() - started) * 1000, 3))
