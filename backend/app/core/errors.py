"""
Domain exceptions and error codes shared across services and API.
"""


class DomainException(Exception):
    """Raised by domain entities when an invariant would be violated."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidOperationDomainException(DomainException):
    """Raised when an operation is not allowed in the entity's current state."""


class ErrorCodes:
    """Machine-readable error codes carried by Result failures."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_OPERATION = "INVALID_OPERATION"
    NOT_FOUND = "NOT_FOUND"
    INVALID_TYPE = "INVALID_TYPE"
    CODE_EXISTS = "CODE_EXISTS"
    NAME_EXISTS = "NAME_EXISTS"
    EXTERNAL_ID_REQUIRED = "EXTERNAL_ID_REQUIRED"

    PARENT_NOT_FOUND = "PARENT_NOT_FOUND"
    CIRCULAR_PARENT = "CIRCULAR_PARENT"
    CATEGORY_REQUIRED = "CATEGORY_REQUIRED"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    BRAND_NOT_FOUND = "BRAND_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    PRODUCT_TYPE_NOT_FOUND = "PRODUCT_TYPE_NOT_FOUND"
    MAIN_PRODUCT_NOT_FOUND = "MAIN_PRODUCT_NOT_FOUND"
    ATTRIBUTE_NOT_FOUND = "ATTRIBUTE_NOT_FOUND"

    CAMPAIGN_NOT_FOUND = "CAMPAIGN_NOT_FOUND"
    DISCOUNT_RULE_NOT_FOUND = "DISCOUNT_RULE_NOT_FOUND"
    EXTERNAL_ID_EXISTS = "EXTERNAL_ID_EXISTS"

    CLIENT_NOT_FOUND = "CLIENT_NOT_FOUND"
    API_KEY_NOT_FOUND = "API_KEY_NOT_FOUND"

    # API key validation
    INVALID_FORMAT = "INVALID_FORMAT"
    KEY_NOT_FOUND = "KEY_NOT_FOUND"
    KEY_REVOKED = "KEY_REVOKED"
    KEY_EXPIRED = "KEY_EXPIRED"
    KEY_INACTIVE = "KEY_INACTIVE"
    CLIENT_INACTIVE = "CLIENT_INACTIVE"
    IP_NOT_ALLOWED = "IP_NOT_ALLOWED"
