"""Tests for the uvicorn-backed APIServer lifecycle."""

from __future__ import annotations

import socket
from collections.abc import Iterator

import httpx
import pytest

from medpost.api.server import APIServer, create_app
from medpost.models.config import FastAPIServerConfig


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return int(sock.getsockname()[1])


@pytest.fixture
def occupied_port() -> Iterator[int]:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    try:
        yield int(sock.getsockname()[1])
    finally:
        sock.close()


@pytest.mark.asyncio
async def test_server_serves_until_stopped() -> None:
    # Given: A server on a free local port
    port = _free_port()
    server = APIServer(create_app(), FastAPIServerConfig(host="127.0.0.1", port=port))

    # When: Starting it and calling the health route
    await server.start()
    try:
        assert server.running is True
        async with httpx.AsyncClient() as client:
            response = await client.get(f"http://127.0.0.1:{port}/health")
    finally:
        await server.stop()

    # Then: The unwired app answers with the error envelope and the server stops
    assert response.status_code == 503
    assert response.json()["error_code"] == "APP_NOT_INITIALIZED"
    assert server.running is False


@pytest.mark.asyncio
async def test_bind_failure_raises_instead_of_exiting(occupied_port: int) -> None:
    # Given: A port that is already listening
    server = APIServer(create_app(), FastAPIServerConfig(host="127.0.0.1", port=occupied_port))

    # When/Then: Startup surfaces a RuntimeError and leaves nothing running
    with pytest.raises(RuntimeError, match="failed to bind"):
        await server.start()
    assert server.running is False

    await server.stop()


@pytest.mark.asyncio
async def test_stop_without_start_is_noop() -> None:
    server = APIServer(create_app(), FastAPIServerConfig())

    await server.stop()

    assert server.running is False
