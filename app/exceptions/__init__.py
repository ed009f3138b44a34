"""Custom exceptions for the GlasMästro application."""

class GlasmastroError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv

class BusinessLogicError(GlasmastroError):
    """Exception raised for business logic violations and invalid input."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)

class NotFoundError(GlasmastroError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Resource not found", payload=None):
        super().__init__(message, 404, payload)

class ConflictError(BusinessLogicError):
    """Raised when a unique value is already taken."""
    def __init__(self, message, payload=None):
        super().__init__(message, status_code=409, payload=payload)

class UnauthorizedError(GlasmastroError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Unauthorized access"):
        super().__init__(message, 403)
