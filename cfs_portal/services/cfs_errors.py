"""Error taxonomy for Call-for-Service operations.

Services raise these; exception handlers in ``cfs_portal.main`` map them to
HTTP responses. Only messages in ``SAFE_STORE_MESSAGES`` (and the fixed
messages passed to validation/authorization errors) ever reach a caller;
anything else becomes ``GENERIC_ERROR_MESSAGE``.
"""

from __future__ import annotations


GENERIC_ERROR_MESSAGE = "Something went wrong. Try again or contact support."

# Store procedure messages that are safe to show to staff verbatim
SAFE_STORE_MESSAGES: frozenset[str] = frozenset(
    {
        "Unable to create the call.",
        "Unable to convert call.",
        "A call cannot be marked as a duplicate of itself.",
        "This call has already been converted to an incident.",
        "The call is already owned by that organization.",
        "The owning organization already has access to this call.",
        "Unable to store the attachment. Try again.",
    }
)


class CfsError(Exception):
    """Base exception for CFS service errors."""

    status_code = 500

    def __init__(self, message: str | None = None) -> None:
        self.message = message or GENERIC_ERROR_MESSAGE
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        return self.message


class CfsValidationError(CfsError):
    """Payload failed validation. Carries a field -> message map."""

    status_code = 400

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.field_errors = field_errors or {}


class AuthorizationError(CfsError):
    """Caller lacks the capability for this operation."""

    status_code = 403


class OrganizationRequiredError(CfsError):
    """Operation writes organization-scoped data but no acting organization is selected."""

    status_code = 409


class NotFoundError(CfsError):
    """Referenced call, attachment or organization is absent or out of scope."""

    status_code = 404


class StoreProcedureError(CfsError):
    """An atomic store procedure failed and was rolled back."""

    status_code = 502

    def __init__(self, message: str | None = None, *, procedure: str | None = None) -> None:
        super().__init__(message)
        self.procedure = procedure

    @property
    def public_message(self) -> str:
        if self.message in SAFE_STORE_MESSAGES:
            return self.message
        return GENERIC_ERROR_MESSAGE


class CompensationFailure(CfsError):
    """Cleanup of a partial write failed; an orphaned resource exists."""

    status_code = 500

    def __init__(
        self,
        message: str,
        *,
        bucket: str,
        path: str,
        original: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.bucket = bucket
        self.path = path
        self.original = original

    @property
    def public_message(self) -> str:
        return GENERIC_ERROR_MESSAGE
