"""
Pydantic schemas for gateway request payloads.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
    field_validator,
)

from gateway.documents import coerce_int
from gateway.errors import InvalidPayload


class DevicePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    device_id: StrictStr

    @field_validator("device_id")
    @classmethod
    def check_device_id(cls, value: str) -> str:
        if not value:
            raise ValueError("device_id must be non-empty")
        return value


class UpdateDevicePayload(DevicePayload):
    device_fields: dict[str, Any] = Field(alias="fields")


class AddCreditsPayload(DevicePayload):
    amount: int

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> int:
        amount = coerce_int(value)
        if amount is None:
            raise ValueError("amount must be an integer")
        return amount


def parse_payload(model: type[DevicePayload], data: Any) -> DevicePayload:
    """
    Validate a decoded JSON body.

    Raises:
        InvalidPayload: If the body is not an object or fails validation.
    """
    if not isinstance(data, dict):
        raise InvalidPayload()
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise InvalidPayload() from exc
