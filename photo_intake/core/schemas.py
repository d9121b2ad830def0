from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Envelope for mutations that return no record."""

    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    error: str


class HealthResponse(BaseModel):
    status: str
