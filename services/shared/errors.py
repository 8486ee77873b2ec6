from typing import Optional


class ValidationError(Exception):
    """Malformed or missing input, scoped to a single field."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class AuthError(Exception):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)
        self.message = message


class PersistenceError(Exception):
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)
        self.message = message


class DeliveryError(Exception):
    def __init__(self, recipient: Optional[str], message: str):
        super().__init__(f"delivery to {recipient} failed: {message}")
        self.recipient = recipient
        self.message = message


class InvalidInputError(ValueError):
    """Malformed input reaching pricing or the queue handler, past request validation."""


def register_error_handlers(app) -> None:
    """Map the error taxonomy onto JSON responses for a FastAPI app."""
    from fastapi import Request
    from fastapi.responses import JSONResponse

    @app.exception_handler(ValidationError)
    async def _validation(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": exc.message, "field": exc.field})

    @app.exception_handler(AuthError)
    async def _auth(request: Request, exc: AuthError):
        return JSONResponse(status_code=401, content={"error": exc.message})

    @app.exception_handler(PersistenceError)
    async def _persistence(request: Request, exc: PersistenceError):
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.exception_handler(DeliveryError)
    async def _delivery(request: Request, exc: DeliveryError):
        return JSONResponse(status_code=502, content={"error": exc.message})
