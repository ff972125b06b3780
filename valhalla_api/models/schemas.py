from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator


class Entity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    type: str
    status: str


class DataFilter(BaseModel):
    """Optional `type`/`status` constraints parsed from the query string."""

    model_config = ConfigDict(frozen=True)

    type: str | None = None
    status: str | None = None

    @field_validator("type", "status", mode="before")
    @classmethod
    def _blank_is_none(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value


class MemoryUsage(BaseModel):
    used: int
    total: int
    unit: Literal["MB"] = "MB"


class StatusResponse(BaseModel):
    application: str
    version: str
    environment: str
    timestamp: str
    uptime: float
    memory: MemoryUsage


class DataListResponse(BaseModel):
    count: int
    data: list[Entity]
    timestamp: str


class DataItemResponse(BaseModel):
    data: Entity
    timestamp: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    uptime: float


class ReadinessResponse(BaseModel):
    status: str
    timestamp: str


class ErrorResponse(BaseModel):
    error: str
    message: str
    timestamp: str
