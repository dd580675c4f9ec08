# remote_executor/errors.py
"""Error kinds surfaced by the gateway.

Every error carries the HTTP status it maps to. AccessDenied and InternalError
both answer 500 and expose their message verbatim to the caller.
"""


class GatewayError(Exception):
    status_code = 500
    kind = "InternalError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Forbidden(GatewayError):
    status_code = 403
    kind = "Forbidden"


class BadRequest(GatewayError):
    status_code = 400
    kind = "BadRequest"


class PayloadTooLarge(GatewayError):
    status_code = 413
    kind = "PayloadTooLarge"


class AccessDenied(GatewayError):
    kind = "AccessDenied"


class InternalError(GatewayError):
    kind = "InternalError"


class ConfigError(Exception):
    """Startup configuration is missing or malformed. Always fatal."""
