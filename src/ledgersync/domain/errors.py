"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ParseError(DomainError):
    """Malformed ledger text. Aborts the whole parse."""

    def __init__(self, line_number: int, message: str):
        self.line_number = line_number
        self.message = message
        super().__init__(f"line {line_number}: {message}")


class BalanceError(DomainError):
    """Transaction postings do not net to zero or cannot be inferred."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        self.message = message
        if line_number is not None:
            super().__init__(f"line {line_number}: {message}")
        else:
            super().__init__(message)


class StateTransitionError(DomainError):
    """Invoice or bill is not in the state required for the requested transition."""

    def __init__(
        self, entity_id: int, current_state: str, required_state: str, entity: str = "Invoice"
    ):
        self.entity = entity
        self.entity_id = entity_id
        self.invoice_id = entity_id if entity == "Invoice" else None
        self.current_state = current_state
        self.required_state = required_state
        super().__init__(
            f"{entity} {entity_id} is {current_state}; "
            f"transition requires {required_state}"
        )


class OverlapError(DomainError):
    """New invoice period would overlap an existing Draft invoice."""


class RangeError(DomainError):
    """Entry start falls outside the project's active window."""


class UnbalancedJournalError(DomainError):
    """Journal debits and credits do not net to zero."""

    def __init__(self, net_cents: int):
        self.net_cents = net_cents
        super().__init__(f"Journal entries are unbalanced by {net_cents / 100:.2f}")


def project_not_found(project_id: int) -> str:
    """Return message for missing project."""
    return f"Project {project_id} not found"


def invoice_not_found(invoice_id: int) -> str:
    """Return message for missing invoice."""
    return f"Invoice {invoice_id} not found"


def entry_not_found(entry_id: int) -> str:
    """Return message for missing entry."""
    return f"Entry {entry_id} not found"


def billing_code_not_found(billing_code_id: int) -> str:
    """Return message for missing billing code."""
    return f"Billing code {billing_code_id} not found"


def invoice_overlap(project_id: int, existing_end, new_start) -> str:
    """Return message when a new period overlaps the latest Draft invoice."""
    return (
        f"New invoice for project {project_id} starting {new_start:%Y-%m-%d} overlaps "
        f"Draft invoice ending {existing_end:%Y-%m-%d}"
    )


def entry_out_of_range(entry_id: int, project_id: int) -> str:
    """Return message for an entry dated outside its project's window."""
    return f"Entry {entry_id} starts outside the active window of project {project_id}"


def bill_not_found(bill_id: int) -> str:
    """Return message for missing bill."""
    return f"Bill {bill_id} not found"
