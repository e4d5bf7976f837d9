"""
HTTP routes for the gateway.

All actions share one endpoint and are selected with the ``action`` query
parameter. Requests without a recognised action are proxied as a plain GET
of the ``path`` query parameter.
"""

from __future__ import annotations

import json
import logging
from typing import Mapping

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool

from gateway import coordinator
from gateway.coordinator import UpstreamResult
from gateway.dependencies import get_firebase_client
from gateway.errors import InvalidPayload, MissingDeviceId
from gateway.firebase import FirebaseClient
from gateway.schemas import AddCreditsPayload, UpdateDevicePayload, parse_payload

logger = logging.getLogger(__name__)

router = APIRouter()

PROXY_ERROR_PREFIX = "Failed to contact Firebase: "


def _decode_body(body: bytes):
    try:
        return json.loads(body)
    except ValueError as exc:
        raise InvalidPayload() from exc


def list_devices(client: FirebaseClient) -> UpstreamResult:
    return coordinator.fetch(client, coordinator.DEVICES_PATH)


def get_device(client: FirebaseClient, device_id: str) -> UpstreamResult:
    device_id = device_id.strip()
    if not device_id:
        raise MissingDeviceId()
    return coordinator.fetch(client, coordinator.device_path(device_id))


def update_device(client: FirebaseClient, body: bytes) -> UpstreamResult:
    payload = parse_payload(UpdateDevicePayload, _decode_body(body))
    return coordinator.update_device(client, payload.device_id, payload.device_fields)


def add_sms_credits(client: FirebaseClient, body: bytes) -> UpstreamResult:
    payload = parse_payload(AddCreditsPayload, _decode_body(body))
    return coordinator.add_sms_credits(client, payload.device_id, payload.amount)


def proxy(client: FirebaseClient, path: str) -> UpstreamResult:
    path = path.strip() or "/"
    return coordinator.fetch(client, path.lstrip("/"), error_prefix=PROXY_ERROR_PREFIX)


def dispatch(
    client: FirebaseClient, method: str, query: Mapping[str, str], body: bytes
) -> UpstreamResult:
    action = query.get("action")
    if action == "list_devices":
        return list_devices(client)
    if action == "get_device":
        return get_device(client, query.get("device_id", ""))
    if action == "update_device" and method == "POST":
        return update_device(client, body)
    if action == "add_sms_credits" and method == "POST":
        return add_sms_credits(client, body)
    return proxy(client, query.get("path", "/"))


@router.get("/health")
def health():
    return {"status": "ok"}


@router.api_route("/", methods=["GET", "POST"])
async def gateway(request: Request, client: FirebaseClient = Depends(get_firebase_client)):
    """
    Dispatch a control panel request to the matching action.

    Upstream calls block, so the action runs in the threadpool.
    """
    body = await request.body() if request.method == "POST" else b""
    result = await run_in_threadpool(
        dispatch, client, request.method, request.query_params, body
    )
    return Response(
        content=result.body,
        status_code=result.status_code,
        media_type="application/json",
    )
