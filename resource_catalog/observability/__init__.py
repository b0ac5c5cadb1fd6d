"""Logging setup for the resource catalog."""

from .logging import (
    ChainContext,
    ChainContextFilter,
    chain_context,
    current_chain,
    generate_chain_id,
    get_chain_id,
    get_logger,
    setup_logging,
)

__all__ = [
    "ChainContext",
    "ChainContextFilter",
    "chain_context",
    "current_chain",
    "generate_chain_id",
    "get_chain_id",
    "get_logger",
    "setup_logging",
]
