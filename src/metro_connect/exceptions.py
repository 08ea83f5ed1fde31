"""Application exceptions, translated to JSON errors by the API layer."""


class MetroConnectException(Exception):
    """Base error with a machine-readable code and an HTTP status."""
    status_code = 500

    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class ValidationException(MetroConnectException):
    status_code = 400

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message, code="VALIDATION_ERROR")


class UnauthorizedException(MetroConnectException):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="UNAUTHORIZED")


class PermissionDeniedException(MetroConnectException):
    status_code = 403

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message, code="FORBIDDEN")


class NotFoundException(MetroConnectException):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class ConflictException(MetroConnectException):
    status_code = 409

    def __init__(self, message: str = "Already exists", status: str = None):
        super().__init__(message, code="CONFLICT")
        self.status = status
