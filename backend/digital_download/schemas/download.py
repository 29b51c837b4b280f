from datetime import datetime

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    detail: str


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    storage: str
