from pydantic import BaseModel


class RelayResponse(BaseModel):
    id: str
    status: str
    downstream_status: int
    correlation_id: str | None = None


class ErrorResponse(BaseModel):
    error: str
    message: str
    stage: str
    correlation_id: str | None = None
    path: str
