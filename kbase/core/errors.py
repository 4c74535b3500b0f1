"""
Domain errors.

Services raise these; the exception handlers registered in ``kbase.main``
turn them into JSON responses of the form::

    {"error": {"code": "content_not_found", "message": "Content not found"}}

Routes never build error bodies by hand for domain failures.
"""

from typing import Dict, List, Optional


class KBaseError(Exception):
    """Base class for every error the API reports deliberately."""

    code = "kbase_error"
    status_code = 500
    message = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# ================================
# Validation
# ================================

class PayloadValidationError(KBaseError):
    """A payload failed shape or cross-field validation. Nothing was written."""

    code = "validation_error"
    status_code = 400
    message = "Invalid data"

    def __init__(self, fields: Dict[str, List[str]], message: Optional[str] = None):
        self.fields = fields
        super().__init__(message)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["fields"] = self.fields
        return data


class UnsupportedExportFormatError(KBaseError):
    code = "unsupported_export_format"
    status_code = 400
    message = "Unsupported export format"


# ================================
# Not Found
# ================================
# Missing rows and rows owned by another user raise the same error.

class NotFoundError(KBaseError):
    code = "not_found"
    status_code = 404
    message = "Not found"


class ContentNotFoundError(NotFoundError):
    code = "content_not_found"
    message = "Content not found"


class ListNotFoundError(NotFoundError):
    code = "list_not_found"
    message = "List not found"


class UserNotFoundError(NotFoundError):
    code = "user_not_found"
    message = "User not found"


# ================================
# Authentication
# ================================

class AuthenticationError(KBaseError):
    code = "unauthorized"
    status_code = 401
    message = "Could not validate credentials"


class NotAuthorizedUserError(KBaseError):
    """Valid Google identity whose e-mail is not on the allow-list."""

    code = "not_authorized"
    status_code = 403
    message = "This account is not authorized to sign in"


# ================================
# Account lifecycle
# ================================

class AccountDeletionError(KBaseError):
    """A mandatory stage of account deletion failed."""

    code = "account_deletion_failed"
    status_code = 500
    message = "Error deleting account"

    def __init__(self, step: str, message: Optional[str] = None):
        self.step = step
        super().__init__(message)


# ================================
# Metadata lookups
# ================================

class UpstreamLookupError(KBaseError):
    """A third-party metadata source could not be queried."""

    code = "lookup_failed"
    status_code = 502
    message = "Metadata lookup failed"


class InvalidLookupQueryError(UpstreamLookupError):
    code = "invalid_lookup_query"
    status_code = 400
    message = "Invalid lookup query"
