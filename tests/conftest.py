"""Shared pytest fixtures for Atelier tests."""

import base64
import io
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from atelier.api.main import create_app
from atelier.core.config import AtelierConfig
from atelier.core.rate_limit import RateLimiter


class FakeClock:
    """Manually advanced monotonic clock for rate-limit tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """Callable handler for ``httpx.MockTransport`` that records requests.

    Responders are registered per host; unregistered hosts answer 404.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.responders: dict[str, Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, host: str, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.responders[host] = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responder = self.responders.get(request.url.host)
        if responder is None:
            return httpx.Response(404, json={"error": "not found"})
        return responder(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def gemini_reply(text: str) -> Callable[[httpx.Request], httpx.Response]:
    """Responder returning a Gemini ``generateContent`` body with *text*."""

    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]},
        )

    return respond


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (1, 1)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 30, 60)).save(buffer, format=fmt)
    return buffer.getvalue()


def to_data_url(data: bytes, subtype: str = "png") -> str:
    return f"data:image/{subtype};base64,{base64.b64encode(data).decode('ascii')}"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> AtelierConfig:
    """Configuration rooted in a temporary directory, vault enabled."""
    return AtelierConfig(
        _env_file=None,
        storage_dir=temp_dir / "gallery",
        vault_enabled=True,
        vault_url="http://vault.test",
        vault_credentials_file=temp_dir / "vault.env",
        gemini_api_key="",
        cms_api_key="wix-key",
        cms_site_id="wix-site",
        rate_limit_max_requests=20,
        rate_limit_window_seconds=60,
    )


@pytest.fixture
def png_bytes() -> bytes:
    """A real 1x1 PNG."""
    return make_image_bytes("PNG")


@pytest.fixture
def png_data_url(png_bytes: bytes) -> str:
    return to_data_url(png_bytes, "png")


@pytest.fixture
def make_data_url() -> Callable[..., str]:
    """Factory building data URLs for real images of a given format."""

    def _make(fmt: str = "PNG", subtype: str = "png", size: tuple[int, int] = (1, 1)) -> str:
        return to_data_url(make_image_bytes(fmt, size), subtype)

    return _make


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream() -> FakeUpstream:
    """Fake vault and CMS answering successfully by default."""
    fake = FakeUpstream()
    fake.on("vault.test", gemini_reply("Nocturne in Static"))
    fake.on(
        "www.wixapis.com",
        lambda request: httpx.Response(200, json={"dataItem": {"id": "remote-123"}}),
    )
    return fake


@pytest.fixture
def test_client(
    test_config: AtelierConfig, upstream: FakeUpstream, fake_clock: FakeClock
) -> Generator[TestClient, None, None]:
    """Gallery API client with faked upstreams and a controllable rate-limit clock."""
    limiter = RateLimiter(
        max_requests=test_config.rate_limit_max_requests,
        window_seconds=test_config.rate_limit_window_seconds,
        clock=fake_clock,
    )
    app = create_app(
        test_config,
        rate_limiter=limiter,
        transport=httpx.MockTransport(upstream),
    )
    with TestClient(app) as client:
        yield client
