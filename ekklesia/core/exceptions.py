class BaseAPIException(Exception):
    """Base exception class for API errors"""

    error_code = "error"

    def __init__(self, message, status_code=400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(BaseAPIException):
    """Raised when a referenced permission, role, user or record does not exist"""

    error_code = "not_found"

    def __init__(self, message="Resource not found", status_code=404):
        super().__init__(message, status_code)


class DuplicateNameError(BaseAPIException):
    """Raised when a permission name, role name or email is already taken"""

    error_code = "duplicate"

    def __init__(self, message="Name already exists", status_code=409):
        super().__init__(message, status_code)


class ValidationError(BaseAPIException):
    """Raised for structurally invalid requests"""

    error_code = "validation_error"

    def __init__(self, message="Validation failed", status_code=422, errors=None):
        self.errors = errors
        super().__init__(message, status_code)


class AuthenticationError(BaseAPIException):
    """Raised when the caller cannot be identified"""

    error_code = "unauthenticated"

    def __init__(self, message="Authentication required", status_code=401):
        super().__init__(message, status_code)


class AuthorizationError(BaseAPIException):
    """Raised when user doesn't have the required capability"""

    error_code = "forbidden"

    def __init__(self, message="Permission denied", status_code=403):
        super().__init__(message, status_code)


class TenantIsolationError(AuthorizationError):
    """Raised when an actor reaches for an entity owned by another tenant"""

    error_code = "tenant_isolation"

    def __init__(
        self, message="Cross-tenant access denied", status_code=403, entity_type=None,
        entity_tenant_id=None, actor_tenant_id=None,
    ):
        self.entity_type = entity_type
        self.entity_tenant_id = entity_tenant_id
        self.actor_tenant_id = actor_tenant_id
        super().__init__(message, status_code)
