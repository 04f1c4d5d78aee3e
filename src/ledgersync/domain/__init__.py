"""Domain layer for ledgersync."""

from ledgersync.domain import entities, errors

__all__ = ["entities", "errors"]
