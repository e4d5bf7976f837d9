"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import Iterator

from fastapi import Depends, Request

from gateway import config
from gateway.config import FirebaseConfig, Settings, get_settings, resolve_firebase_config
from gateway.firebase import FirebaseClient, InMemoryFirebaseClient, RequestsFirebaseClient

_memory_client: InMemoryFirebaseClient | None = None


def get_memory_client() -> InMemoryFirebaseClient:
    """
    Return a singleton in-memory database so local data persists across requests.
    """
    global _memory_client
    if _memory_client is None:
        _memory_client = InMemoryFirebaseClient()
    return _memory_client


def get_firebase_config(
    request: Request, settings: Settings = Depends(get_settings)
) -> FirebaseConfig:
    return resolve_firebase_config(
        settings,
        request.query_params,
        static_url=config.FIREBASE_DATABASE_URL,
        static_key=config.FIREBASE_WEB_API_KEY,
    )


def get_firebase_client(
    firebase_config: FirebaseConfig = Depends(get_firebase_config),
    settings: Settings = Depends(get_settings),
) -> Iterator[FirebaseClient]:
    """
    Yield the upstream client for one request; its HTTP session is closed
    once the response is done.
    """
    if settings.use_in_memory_backends:
        yield get_memory_client()
        return
    client = RequestsFirebaseClient(
        base_url=firebase_config.base_url,
        api_key=firebase_config.api_key,
        connect_timeout=settings.connect_timeout,
        read_timeout=settings.read_timeout,
    )
    try:
        yield client
    finally:
        client.close()
