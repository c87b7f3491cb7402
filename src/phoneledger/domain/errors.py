"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or a required field missing on a stored record."""


class NotFoundError(DomainError):
    """Requested record, entity or inventory item does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as an IMEI that is already in stock."""


class ConflictRetryExhaustedError(DomainError):
    """Optimistic-concurrency retries were used up without a clean commit."""


class PartialLookupFailureError(NotFoundError):
    """A line item's brand, model or IMEI could not be resolved before commit."""


def record_not_found(transaction_type: str, transaction_id: str) -> str:
    """Return message for a missing (or already reversed) record."""
    return f"{transaction_type} {transaction_id} not found"


def entity_not_found(entity_id: str) -> str:
    """Return message for an id that matches no customer, middleman or supplier."""
    return f"Entity {entity_id} not found in customers, middlemen or suppliers"


def brand_not_found(name: str) -> str:
    """Return message for a missing brand."""
    return f"Brand '{name}' not found"


def model_not_found(brand: str, model: str) -> str:
    """Return message for a missing model under a brand."""
    return f"Model '{model}' not found for brand '{brand}'"


def imei_not_found(imei: str) -> str:
    """Return message for an IMEI with no live phone."""
    return f"No phone in stock with IMEI {imei}"


def imei_in_stock(imei: str) -> str:
    """Return message when an IMEI already has a live phone."""
    return f"A phone with IMEI {imei} is already in stock"


def retries_exhausted(attempts: int) -> str:
    """Return message when conflicting writes exhausted the retry budget."""
    return f"Gave up after {attempts} conflicting attempt{'s' if attempts != 1 else ''}"
