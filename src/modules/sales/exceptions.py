"""Sale domain exceptions.

Raised by the Service Layer when business rules are violated.  The API
layer (Views) catches ``SaleError`` and translates it into the standard
error envelope using the class attributes below.

Validation and business-rule errors are raised before the first write of
an operation.  ``PersistenceFailure`` and ``ConcurrentTransitionConflict``
may surface after writes began; the surrounding transaction is rolled back
in both cases.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class SaleError(Exception):
    """Base class of every error the sale engine reports."""

    status_code = 400
    error_type = "sale_error"
    code = "sale_error"

    def extra(self) -> Dict[str, Any]:
        """Additional fields for the API error entry."""
        return {}


class SaleValidationError(SaleError):
    """Malformed or inconsistent input (e.g. SIM sale without shipment)."""

    error_type = "validation_error"
    code = "invalid"


class IncompatibleOfferError(SaleError):
    """Plan/promotion not sellable with the sale's origin company."""

    status_code = 422
    error_type = "incompatible_offer"
    code = "incompatible_offer"


class InvalidPricingInput(SaleError):
    """Base price not positive, or discount outside ``[0, 100]``."""

    status_code = 422
    error_type = "invalid_pricing_input"
    code = "invalid_pricing_input"


class InvalidTransition(SaleError):
    """The requested state is not a legal successor of the current one."""

    status_code = 409
    error_type = "invalid_transition"
    code = "invalid_transition"

    def __init__(
        self,
        machine: str,
        from_state: Optional[str],
        to_state: str,
        message: Optional[str] = None,
    ) -> None:
        self.machine = machine
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            message or f"Cannot transition {machine} from {from_state} to {to_state}."
        )

    def extra(self) -> Dict[str, Any]:
        return {"from": self.from_state, "to": self.to_state, "machine": self.machine}


class ConcurrentTransitionConflict(SaleError):
    """Lost a serialization race on the same sale and machine; safe to retry."""

    status_code = 409
    error_type = "concurrent_transition_conflict"
    code = "conflict"


class DuplicateReferenceCodeError(SaleError):
    """External reference code already taken (retries exhausted or supplied)."""

    status_code = 409
    error_type = "duplicate_reference_code"
    code = "duplicate_reference_code"


class PersistenceFailure(SaleError):
    """Storage-layer fault; nothing was written."""

    status_code = 503
    error_type = "persistence_failure"
    code = "persistence_failure"


class SaleNotFound(SaleError):
    status_code = 404
    error_type = "not_found"
    code = "sale_not_found"


class ClientNotFound(SaleError):
    status_code = 404
    error_type = "not_found"
    code = "client_not_found"


class PlanNotFound(SaleError):
    status_code = 404
    error_type = "not_found"
    code = "plan_not_found"


class PromotionNotFound(SaleError):
    status_code = 404
    error_type = "not_found"
    code = "promotion_not_found"


class OriginCompanyNotFound(SaleError):
    status_code = 404
    error_type = "not_found"
    code = "origin_company_not_found"
