# src/arenarank/middleware/__init__.py

"""Middleware components wrapped around ArenaRank engine operations."""

from .logging import configure_logging, log_operation

__all__ = ["configure_logging", "log_operation"]
