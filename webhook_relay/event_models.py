from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import Any, Dict
import base64
import orjson

from .timestamps import format_rfc3339

JSON_CONTENT_TYPE = "application/json"
SUPPORTED_SPEC_VERSIONS = ("1.0", "0.3")


class InboundEvent(BaseModel):
    """Event read from the ce-* headers and body of one inbound request."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="ce-id, copied verbatim")
    source: str = Field(..., description="ce-source")
    specversion: str = Field(..., description="ce-specversion")
    type: str = Field(..., description="ce-type")
    time: datetime = Field(..., description="ce-time, parsed as RFC 3339")
    payload: bytes = Field(default=b"", description="Raw request body")

    def log_view(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "specversion": self.specversion,
            "type": self.type,
            "time": format_rfc3339(self.time),
            "payload": base64.b64encode(self.payload).decode("ascii"),
        }


class OutboundEnvelope(BaseModel):
    """
    CloudEvents envelope relayed downstream.

    ``datacontenttype`` is always ``application/json``. The payload is
    embedded verbatim as ``data`` when it is a JSON document and as
    ``data_base64`` otherwise.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    source: str
    specversion: str
    type: str
    time: datetime
    datacontenttype: str = JSON_CONTENT_TYPE
    payload: bytes = b""

    @field_validator("id", "source", "type")
    @classmethod
    def _not_empty(cls, v: str, info) -> str:
        if not v:
            raise ValueError(f"{info.field_name} must not be empty")
        return v

    @field_validator("specversion")
    @classmethod
    def _known_spec_version(cls, v: str) -> str:
        if v not in SUPPORTED_SPEC_VERSIONS:
            raise ValueError(f"unsupported specversion {v!r}")
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Structured-mode CloudEvents JSON members."""
        doc: Dict[str, Any] = {
            "specversion": self.specversion,
            "id": self.id,
            "source": self.source,
            "type": self.type,
            "datacontenttype": self.datacontenttype,
            "time": format_rfc3339(self.time),
        }
        if self.payload:
            if _is_json(self.payload):
                doc["data"] = orjson.Fragment(self.payload)
            else:
                doc["data_base64"] = base64.b64encode(self.payload).decode("ascii")
        return doc

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_dict())


def _is_json(payload: bytes) -> bool:
    try:
        orjson.loads(payload)
    except orjson.JSONDecodeError:
        return False
    return True
