"""Tests for the security headers middleware."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from citizen_backend.core.security import SecurityHeadersMiddleware


def _app(is_production: bool) -> FastAPI:
    app = FastAPI()

    @app.get("/ok")
    async def ok() -> dict:
        return {"ok": True}

    app.add_middleware(SecurityHeadersMiddleware, is_production=is_production)
    return app


class TestSecurityHeadersMiddleware:
    """Test response hardening headers."""

    @pytest.mark.asyncio
    async def test_headers_present(self):
        """Test that every response is marked non-cacheable and non-framable."""
        async with AsyncClient(transport=ASGITransport(app=_app(False)), base_url="http://t") as ac:
            response = await ac.get("/ok")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["referrer-policy"] == "no-referrer"
        assert "no-store" in response.headers["cache-control"]
        assert "frame-ancestors 'none'" in response.headers["content-security-policy"]
        assert "strict-transport-security" not in response.headers

    @pytest.mark.asyncio
    async def test_hsts_only_in_production(self):
        """Test that HSTS is added when running in production."""
        async with AsyncClient(transport=ASGITransport(app=_app(True)), base_url="http://t") as ac:
            response = await ac.get("/ok")

        assert response.headers["strict-transport-security"].startswith("max-age=31536000")
