# FILE: app/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class BillingError(Exception):
    """
    Base for every ledger error.

    Recoverable errors leave the account / claim untouched; the API layer
    turns them into the standard error envelope using `status_code` + `code`.
    """
    status_code: int = 400
    code: str = "billing_error"

    def __init__(self, msg: str, *, details: Any = None):
        super().__init__(msg)
        self.msg = msg
        self.details = details


class ValidationError(BillingError):
    status_code = 422
    code = "validation_error"


class InvalidAmountError(BillingError):
    status_code = 422
    code = "invalid_amount"


class OverpaymentError(BillingError):
    status_code = 409
    code = "overpayment"


class AccountNotSettledError(BillingError):
    status_code = 409
    code = "account_not_settled"


class AccountClosedError(BillingError):
    status_code = 409
    code = "account_closed"


class InvalidTransitionError(BillingError):
    status_code = 409
    code = "invalid_transition"


class ConcurrencyConflictError(BillingError):
    status_code = 409
    code = "concurrency_conflict"


class NotFoundError(BillingError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity: str, ident: Optional[Any] = None):
        msg = f"{entity} not found" if ident is None else f"{entity} {ident} not found"
        super().__init__(msg, details={"entity": entity, "id": ident})


class InvariantViolationError(BillingError):
    """Internal-consistency bug (negative balance, drifted totals). Never auto-corrected."""
    status_code = 500
    code = "invariant_violation"
