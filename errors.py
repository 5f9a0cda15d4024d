# ─────────────────────────────────────────────────────────────────
# errors.py — Error Taxonomy
#
# Handlers raise these instead of building error responses by hand.
# main.py turns every HubError into the same JSON shape:
#   {"error": "<code>", "detail": "<message>"}
# ─────────────────────────────────────────────────────────────────


class HubError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str = "", code: str = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        if code:
            self.code = code


class ValidationError(HubError):
    """A required field is missing or a value is unusable → 400"""
    status_code = 400
    code = "validation_error"


class AuthError(HubError):
    """Operator token missing or wrong → 401"""
    status_code = 401
    code = "auth_required"


class ForbiddenError(HubError):
    status_code = 403
    code = "forbidden"


class NotFoundError(HubError):
    """Push send to a device with no live connection → 404"""
    status_code = 404
    code = "not_connected"


class InternalError(HubError):
    status_code = 500
    code = "internal_error"
