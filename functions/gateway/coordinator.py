"""
Read-modify-write coordination against the Realtime Database.

An update is a GET of the device record, a local transform, and a PUT of the
result. There is no version check or conditional write between the two
calls, so concurrent updates to the same device can lose one writer's change.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable
import json
import logging

from gateway.documents import add_credits, as_document, merge_fields
from gateway.errors import UpstreamError
from gateway.firebase import FirebaseClient, UpstreamResponse

logger = logging.getLogger(__name__)

DEVICES_PATH = "devices"


@dataclass(frozen=True)
class UpstreamResult:
    """Status code and raw body to hand back to the caller."""

    status_code: int
    body: bytes


def device_path(device_id: str) -> str:
    return f"{DEVICES_PATH}/{device_id}"


def _forwarded(response: UpstreamResponse, path: str) -> UpstreamResult | None:
    if response.status_code >= 400:
        logger.warning(
            "Firebase returned %s for %s; forwarding", response.status_code, path
        )
        return UpstreamResult(status_code=response.status_code, body=response.body)
    return None


def _check(response: UpstreamResponse, path: str, error_prefix: str = "") -> UpstreamResult | None:
    if response.failed:
        raise UpstreamError(f"{error_prefix}{response.error}")
    return _forwarded(response, path)


def _parse_document(body: bytes) -> dict:
    try:
        return as_document(json.loads(body))
    except ValueError:
        return {}


def fetch(client: FirebaseClient, path: str, error_prefix: str = "") -> UpstreamResult:
    """
    Single GET passthrough: the upstream body is returned verbatim.

    Raises:
        UpstreamError: If the request could not be completed.
    """
    response = client.get(path)
    forwarded = _check(response, path, error_prefix)
    if forwarded is not None:
        return forwarded
    return UpstreamResult(status_code=200, body=response.body)


def read_modify_write(
    client: FirebaseClient, path: str, transform: Callable[[dict], Any]
) -> UpstreamResult:
    """
    GET ``path``, apply ``transform`` to the stored object and PUT the result.

    A body that is not a JSON object is treated as an empty object. Upstream
    statuses >= 400 from either call are forwarded with their body untouched;
    the PUT response body is returned on success.

    Raises:
        UpstreamError: If either request could not be completed.
    """
    fetched = client.get(path)
    forwarded = _check(fetched, path)
    if forwarded is not None:
        return forwarded

    updated = transform(_parse_document(fetched.body))

    logger.info("Writing %s (%d fields)", path, len(updated))
    written = client.put(path, updated)
    forwarded = _check(written, path)
    if forwarded is not None:
        return forwarded
    return UpstreamResult(status_code=200, body=written.body)


def update_device(client: FirebaseClient, device_id: str, fields: dict) -> UpstreamResult:
    return read_modify_write(
        client, device_path(device_id), lambda current: merge_fields(current, fields)
    )


def add_sms_credits(client: FirebaseClient, device_id: str, amount: int) -> UpstreamResult:
    return read_modify_write(
        client, device_path(device_id), lambda current: add_credits(current, amount)
    )
