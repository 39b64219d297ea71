from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str  # Generic message only, details stay in server logs
