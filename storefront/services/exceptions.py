# storefront/services/exceptions.py


class ServiceError(Exception):
    """Base class for service-layer errors.

    ``code`` is a machine-stable identifier clients can switch on; ``detail``
    is the short human readable message.
    """

    status_code = 400
    code = "service_error"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class DomainValidationError(ServiceError):
    """Malformed or missing input."""

    code = "validation_error"


class NoIdentityError(DomainValidationError):
    """Neither an authenticated user nor a session token was presented."""

    code = "identity_required"


class InvalidSessionTokenError(DomainValidationError):
    code = "invalid_session"


class DuplicateUsernameError(DomainValidationError):
    code = "username_taken"


class ResourceNotFoundError(ServiceError):
    status_code = 404
    code = "not_found"


class ItemNotFoundError(ResourceNotFoundError):
    code = "item_not_found"


class UserNotFoundError(ResourceNotFoundError):
    code = "user_not_found"


class UnauthorizedError(ServiceError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    code = "unauthorized"


class InvalidCredentialsError(UnauthorizedError):
    code = "invalid_credentials"


class BusinessRuleError(ServiceError):
    """The request is well formed but the current state forbids it."""

    code = "business_rule_violation"


class ItemUnavailableError(BusinessRuleError):
    code = "item_unavailable"


class NoActiveCartError(BusinessRuleError):
    code = "no_active_cart"


class EmptyCartError(BusinessRuleError):
    code = "empty_cart"
