# --- crafthub/errors.py ---
from flask import current_app, jsonify
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .utils.api import api_error


class ServiceError(Exception):
    """Base for every failure the API reports as a structured response.

    ``kind`` is the stable, machine-readable category; ``data`` is merged
    into the response envelope.
    """
    kind = "service_error"
    status_code = 400

    def __init__(self, message: str, **data):
        super().__init__(message)
        self.message = message
        self.data = data

    def as_api(self):
        return api_error(self.message, {"kind": self.kind, **self.data})


# ---- taxonomy ---------------------------------------------------------------

class ValidationError(ServiceError):
    kind = "validation_error"
    status_code = 422

class AuthenticationError(ServiceError):
    kind = "authentication_error"
    status_code = 401

class AuthorizationError(ServiceError):
    kind = "authorization_error"
    status_code = 403

class NotFoundError(ServiceError):
    kind = "not_found"
    status_code = 404

class PreconditionError(ServiceError):
    kind = "precondition_failed"
    status_code = 400

class StateConflictError(ServiceError):
    kind = "state_conflict"
    status_code = 409

class ExternalServiceError(ServiceError):
    kind = "external_service_error"
    status_code = 502


# ---- not found --------------------------------------------------------------

class AccountNotFoundError(NotFoundError):
    pass

class CouponNotFoundError(NotFoundError):
    pass

class ReviewNotFoundError(NotFoundError):
    pass

class CheckoutOrderNotFoundError(NotFoundError):
    pass


# ---- preconditions ----------------------------------------------------------

class EmptyCartError(PreconditionError):
    pass

class PaymentRequiredError(PreconditionError):
    pass

class AlreadyPurchasedError(PreconditionError):
    pass

class DuplicateAccountError(PreconditionError):
    pass

class DuplicateCouponError(PreconditionError):
    pass

class InvalidVerificationCodeError(PreconditionError):
    pass

class PurchaseRequiredError(PreconditionError):
    status_code = 403

class AccountNotVerifiedError(PreconditionError):
    status_code = 403


# ---- conflicts --------------------------------------------------------------

class CouponInvalidError(StateConflictError):
    pass

class CartChangedError(StateConflictError):
    pass


# ---- payment gateway --------------------------------------------------------

class PaymentGatewayUnavailableError(ExternalServiceError):
    pass

class PaymentIncompleteError(ExternalServiceError):
    status_code = 402

    def __init__(self, status: str, message: str = "payment not completed"):
        super().__init__(message, gateway_status=status)
        self.gateway_status = status


# ---- flask wiring -----------------------------------------------------------

def _pydantic_errors(e: PydanticValidationError):
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
        for err in e.errors()
    ]


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(e: ServiceError):
        db.session.rollback()
        r = jsonify(e.as_api())
        r.status_code = e.status_code
        return r

    @app.errorhandler(PydanticValidationError)
    def handle_schema_error(e: PydanticValidationError):
        r = jsonify(api_error("invalid request body", {
            "kind": ValidationError.kind,
            "errors": _pydantic_errors(e),
        }))
        r.status_code = 422
        return r

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(e: SQLAlchemyError):
        current_app.logger.exception("storage failure: %s", e)
        db.session.rollback()
        r = jsonify(api_error("storage failure", {"kind": "storage_error"}))
        r.status_code = 500
        return r
