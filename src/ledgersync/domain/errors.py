"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConfigError(DomainError):
    """Configuration file or value could not be used."""


class NotInitializedError(DomainError):
    """Ledger gateway used before it was initialized."""


class CleanupAbortedError(DomainError):
    """Destructive cleanup was not confirmed by the operator."""


class StateTransitionError(DomainError):
    """Importer lifecycle moved between states it cannot move between."""


class ScrapeError(DomainError):
    """A source scraper reported an unsuccessful scrape."""

    def __init__(self, error_type: str, message: Optional[str] = None):
        self.error_type = error_type
        self.error_message = message
        super().__init__(f"{error_type}: {message}" if message else error_type)


class RetryExhaustedError(DomainError):
    """Every attempt of a retried operation failed.

    ``errors`` holds each attempt's failure in the order they occurred.
    """

    def __init__(self, context: str, errors: list[BaseException]):
        self.context = context
        self.errors = list(errors)
        super().__init__(retry_exhausted(context, len(self.errors)))


def retry_exhausted(context: str, attempts: int) -> str:
    """Return message for an operation that failed on every attempt."""
    return f"{context} failed after {attempts} attempt{'s' if attempts != 1 else ''}"


def account_not_found(account_id: str) -> str:
    """Return message for missing ledger account."""
    return f"Account {account_id} not found"


def transition_not_allowed(current: str, target: str) -> str:
    """Return message for an invalid lifecycle transition."""
    return f"Cannot move importer from {current} to {target}"


def error_causes(error: BaseException) -> list[BaseException]:
    """Return the underlying causes carried by an error.

    Retry failures carry every attempt; any other error is its own cause.
    """
    if isinstance(error, RetryExhaustedError):
        return list(error.errors)
    return [error]
