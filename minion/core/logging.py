"""Structured logging via structlog.

Configures structlog once at worker startup. Pipeline modules keep using
``logging.getLogger(__name__)``; the stdlib bridge renders their records
with a `structlog.stdlib.ProcessorFormatter`, so they get the same
processors and renderer as native structlog events.

Renderer selection:
  debug=True : `ConsoleRenderer` with colours for local development.
  debug=False: `JSONRenderer` for machine-parseable logs in production.

ContextVar injection:
  The executor binds the current task id for the duration of a task run.
  Each run executes on its own worker thread, so every log line emitted
  while that run is active carries its ``task_id``.
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar, Token

import structlog

_task_id_var: ContextVar[str] = ContextVar("task_id", default="")


def get_task_id() -> str:
    """Return the task id bound to the current context, or empty string."""
    return _task_id_var.get()


def bind_task_id(task_id: str) -> Token:
    """Bind a task id to the current context. Pass the token to `unbind_task_id`."""
    return _task_id_var.set(task_id)


def unbind_task_id(token: Token) -> None:
    _task_id_var.reset(token)


def _inject_context_vars(
    logger: logging.Logger,
    method: str,
    event_dict: dict,
) -> dict:
    """Structlog processor: inject task_id from the ContextVar."""
    task_id = get_task_id()
    if task_id:
        event_dict["task_id"] = task_id
    return event_dict


def configure_structlog(debug: bool = True) -> None:
    """Configure structlog for the worker lifetime.

    Call once from worker startup before any task is submitted.
    Calling multiple times is safe: structlog is idempotent.
    """
    shared_processors: list = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _inject_context_vars,
        structlog.processors.StackInfoRenderer(),
    ]

    if debug:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        # ConsoleRenderer formats tracebacks itself
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # Bridge stdlib logging: pipeline modules and httpx log through
    # logging.getLogger(), and their records go through the same renderer.
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(build_stdlib_formatter(shared_processors, renderer))
    logging.basicConfig(
        handlers=[handler],
        level=logging.DEBUG if debug else logging.INFO,
        force=True,
    )


def build_stdlib_formatter(
    shared_processors: list,
    renderer,
) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared_processors],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )
