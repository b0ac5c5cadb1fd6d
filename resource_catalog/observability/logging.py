"""
Log records tagged with the pagination chain they were emitted from.

``PaginatedFetcher`` enters ``chain_context`` for every chain it walks. Any
log line written while that chain is running (by the fetcher, the store, the
metrics collector or httpx) picks up the chain's id, collection name and
generation through ``ChainContextFilter``, so the interleaved output of the
base search and its tag/category expansions can be told apart.

Usage:
    from resource_catalog.observability import chain_context, get_logger

    logger = get_logger(__name__)
    with chain_context("resources", generation=3):
        logger.info("Page merged", extra={"page": 2})
"""

import logging
import os
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

from pythonjsonlogger import jsonlogger

# Fields copied onto every record; "-" when no chain is running
CHAIN_FIELDS = ("chain_id", "collection", "generation")


@dataclass(frozen=True)
class ChainContext:
    chain_id: str
    collection: str
    generation: Optional[int] = None


_chain_ctx: ContextVar[Optional[ChainContext]] = ContextVar("chain", default=None)


def current_chain() -> Optional[ChainContext]:
    return _chain_ctx.get()


def get_chain_id() -> Optional[str]:
    chain = _chain_ctx.get()
    return chain.chain_id if chain else None


def generate_chain_id(collection: str = "chain") -> str:
    """``<collection>-<12 hex chars>``, e.g. ``tags-3f2a9c0d41be``."""
    return f"{collection}-{uuid.uuid4().hex[:12]}"


@contextmanager
def chain_context(
    collection: str,
    generation: Optional[int] = None,
    chain_id: Optional[str] = None,
) -> Iterator[ChainContext]:
    """Mark the running task as walking one chain of ``collection``.

    The context variable is per asyncio task, so concurrent chains started
    with ``asyncio.gather`` each see their own value.
    """
    chain = ChainContext(chain_id or generate_chain_id(collection), collection, generation)
    token = _chain_ctx.set(chain)
    try:
        yield chain
    finally:
        _chain_ctx.reset(token)


class ChainContextFilter(logging.Filter):
    """Copies the current chain onto each record.

    Values passed explicitly through ``extra=`` win over the context, which
    lets the metrics summary name its chain after the context has closed.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        chain = _chain_ctx.get()
        for name in CHAIN_FIELDS:
            if name not in record.__dict__:
                value = getattr(chain, name) if chain else None
                setattr(record, name, "-" if value is None else value)
        return True


class CatalogJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        for name in CHAIN_FIELDS:
            log_record[name] = getattr(record, name, "-")
        log_record["environment"] = os.getenv("ENVIRONMENT", "development")
        log_record["service"] = "resource-catalog"

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """
    Install a single stderr handler on the root logger.

    Only the command line calls this; library users keep their own logging
    configuration and can add ``ChainContextFilter`` to their handlers.

    Environment variables:
    - LOG_LEVEL: DEBUG shows every page request, INFO one line per chain
    - LOG_FORMAT: json or text (default: json when ENVIRONMENT=production)
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    log_format = fmt or os.getenv("LOG_FORMAT", "json" if os.getenv("ENVIRONMENT") == "production" else "text")

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(CatalogJsonFormatter(
            "%(timestamp)s %(level)s %(logger)s %(message)s",
            rename_fields={"timestamp": "@timestamp"},
        ))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(collection)s#%(generation)s %(chain_id)s | %(message)s",
            datefmt="%H:%M:%S",
        ))
    handler.addFilter(ChainContextFilter())

    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
