from datetime import datetime

from pydantic import BaseModel


class CityOut(BaseModel):
    key: str
    name: str
    kind: str
    endpoint: str
    trust_score: float


class CitiesResponse(BaseModel):
    request_id: str
    count: int
    data: list[CityOut]


class HealthResponse(BaseModel):
    status: str
    environment: str
    cities_configured: int
    cache: dict | None = None
    timestamp: datetime
