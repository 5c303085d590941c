"""
Pydantic models — the data contracts for the service.

The primary feed is modelled by the GTFS-Realtime protobuf bindings, so only
the secondary (additional info) feed and the API responses live here.
Separating models from routes lets us reuse schemas across the API,
the pipeline, and tests without circular imports.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AlertFeedType(str, Enum):
    all = "all"
    normal = "normal"


# ── Upstream contract (additional info JSON feed) ────────────────────────────


class MetadataProperties(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    speech_text: Optional[str] = Field(default=None, alias="speechText")

    @field_validator("speech_text", mode="before")
    @classmethod
    def _non_text_speech(cls, value):
        # Numbers are coerced; anything else that is not text means "no speech text".
        if value is None or (isinstance(value, (str, int, float)) and not isinstance(value, bool)):
            return value
        return None


class MetadataRecord(BaseModel):
    """One entry of infos.current; id is the join key into the GTFS feed."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    priority: Optional[str] = None
    properties: MetadataProperties = Field(default_factory=MetadataProperties)

    @field_validator("properties", mode="before")
    @classmethod
    def _null_properties(cls, value):
        return {} if value is None else value


class MetadataInfos(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # Records stay raw here and are validated one by one when the index is
    # built, so a single malformed record cannot reject the whole payload.
    current: List[Any] = Field(default_factory=list)

    @field_validator("current", mode="before")
    @classmethod
    def _null_current(cls, value):
        return [] if value is None else value


class AddInfoResponse(BaseModel):
    """Matches the upstream add_info response envelope."""

    model_config = ConfigDict(extra="ignore")

    infos: MetadataInfos = Field(default_factory=MetadataInfos)

    @field_validator("infos", mode="before")
    @classmethod
    def _null_infos(cls, value):
        return {} if value is None else value


# ── API response models ───────────────────────────────────────────────────────


class ErrorResponse(BaseModel):
    error: bool = True
    message: str


class HealthStatus(str, Enum):
    ok = "ok"
    degraded = "degraded"


class HealthResponse(BaseModel):
    status: HealthStatus
    cache_fresh: bool
    cache_expires_in_seconds: Optional[float] = None
    last_successful_refresh: Optional[datetime] = None
    last_error: Optional[str] = None
    cache_ttl_seconds: float
    alerts_feed_url: str
    add_info_url: str
