"""Custom exception classes for rolekit."""


class RolekitError(Exception):
    """Base exception for rolekit."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class AuthenticationError(RolekitError):
    """Raised when credentials are invalid."""
    pass


class UnauthenticatedError(RolekitError):
    """Raised when a check requires a subject and none is present."""

    def __init__(self, message: str = "Unauthenticated."):
        super().__init__(message)


class ForbiddenError(RolekitError):
    """Raised when the subject lacks the required role or permission."""

    def __init__(self, message: str = "Unauthorized. Insufficient privileges."):
        super().__init__(message)


class NotFoundError(RolekitError):
    """Raised by the *_or_fail lookups when nothing matches."""
    pass


class ConflictError(RolekitError):
    """Raised when a unique value (slug, email) is already taken."""
    pass


class DuplicateSlugError(ConflictError):
    """Raised when a role or permission slug is already taken."""

    def __init__(self, kind: str, slug: str):
        self.kind = kind
        self.slug = slug
        super().__init__(f"A {kind} with slug '{slug}' already exists.")


class StoreUnavailableError(RolekitError):
    """Raised when the role/permission tables are not provisioned yet."""
    pass

