"""
Error taxonomy for locally detected failures.

Upstream HTTP error statuses are not exceptions: they are forwarded to the
caller as-is by the coordinator.
"""

from __future__ import annotations

from typing import Optional


class GatewayError(Exception):
    """Base error rendered as ``{"error": kind, "message": ...}``."""

    kind = "gateway_error"
    status_code = 500

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.kind)
        self.message = message

    def to_payload(self) -> dict:
        payload = {"error": self.kind}
        if self.message is not None:
            payload["message"] = self.message
        return payload


class ConfigError(GatewayError):
    kind = "missing_configuration"
    status_code = 400


class InvalidPayload(GatewayError):
    kind = "invalid_payload"
    status_code = 400


class MissingDeviceId(GatewayError):
    kind = "missing_device_id"
    status_code = 400


class UpstreamError(GatewayError):
    """The HTTP exchange with Firebase could not be completed."""

    kind = "upstream_error"
    status_code = 502
