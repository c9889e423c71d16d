"""API error classes.

Every error carries a machine-readable code, a human-readable message and
the HTTP status it maps to. Exception handlers in app.main turn them into
the standard error envelope.
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, query param errors, and
    business preconditions the caller can fix (e.g. missing documents).
    Pass ``field`` to name the first failing constraint.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
        *,
        field: str | None = None,
    ) -> None:
        if details is None and field is not None:
            details = [{"field": field, "error": message}]
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class UnauthorizedError(APIError):
    """Authentication required (401)."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class ForbiddenError(APIError):
    """Not allowed to access resource (403).

    Use when auth is valid but user lacks permission.
    """

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
        )


class NotFoundError(APIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        else:
            message = f"{resource} not found"
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
        )


class ConflictError(APIError):
    """Duplicate or conflicting resource (409).

    Accepts custom code for specific conflict types.
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class InvalidStateError(APIError):
    """Business rule violation (422).

    Use when request is syntactically valid but the record is in a state
    that does not allow the transition, e.g. revoking a draft verification.
    """

    def __init__(self, message: str) -> None:
        super().__init__(
            code="INVALID_STATE_TRANSITION",
            message=message,
            status_code=422,
        )


class AdminRequiredError(ForbiddenError):
    """Admin access required (403).

    Raised by the require_admin dependency when user lacks admin flag.
    """

    def __init__(self) -> None:
        APIError.__init__(
            self,
            code="ADMIN_REQUIRED",
            message="Admin access required",
            status_code=403,
        )


class ServiceNotConfiguredError(APIError):
    """A required integration secret or price is not configured.

    Cron endpoints raise this with 401 so an unconfigured deployment
    rejects every scheduled call. Billing raises it with 500.

    Args:
        message: User-readable description of what is missing.
        status_code: HTTP status to return (default 500).
    """

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(
            code="SERVICE_NOT_CONFIGURED",
            message=message,
            status_code=status_code,
        )


class UpstreamServiceError(APIError):
    """Storage or billing provider call failed (502).

    Security: message is user-readable; the provider exception is logged
    server-side and never echoed back.

    Args:
        service: Provider name ("stripe", "s3").
        message: User-readable message.
    """

    def __init__(self, service: str, message: str) -> None:
        super().__init__(
            code="UPSTREAM_ERROR",
            message=message,
            status_code=502,
            details=[{"service": service}],
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
