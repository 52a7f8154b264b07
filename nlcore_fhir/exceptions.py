from fastapi import HTTPException


class FhirException(HTTPException):
    """
    HTTP error that is rendered as a FHIR OperationOutcome instead of the
    default FastAPI json error body.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        diagnostics: str | None = None,
        code: str | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.diagnostics = diagnostics
        # Overrides the issue code derived from the status code
        self.code = code


class InvalidRequestException(FhirException):
    def __init__(self, message: str, diagnostics: str | None = None) -> None:
        super().__init__(400, message, diagnostics)


class AuthenticationException(FhirException):
    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(401, message)


class ForbiddenException(FhirException):
    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(403, message)


class NotFoundException(FhirException):
    def __init__(self, message: str) -> None:
        super().__init__(404, message)


class ConflictException(FhirException):
    def __init__(self, message: str) -> None:
        super().__init__(409, message)


class UnsupportedResourceException(FhirException):
    def __init__(self, resource_type: str) -> None:
        super().__init__(
            404, f"Resource type '{resource_type}' is not supported", code="not-supported"
        )


class MethodNotAllowedException(FhirException):
    def __init__(self, method: str) -> None:
        super().__init__(405, f"Method {method} not supported")
