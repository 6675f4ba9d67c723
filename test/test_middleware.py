"""
Tests for the structured logging middleware
"""

import json
import logging

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from soudan.middleware.logging import (
    RequestIdFilter,
    StructuredFormatter,
    StructuredLoggingMiddleware,
    level_for_status,
    request_id_var,
    setup_structured_logging,
)
from utils.mocks import ORIGIN, comment_body


@pytest.fixture
def logged_app() -> FastAPI:
    app = FastAPI()

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    app.add_middleware(StructuredLoggingMiddleware)
    return app


class TestStructuredLoggingMiddleware:
    """Test request tracing"""

    @pytest.mark.asyncio
    async def test_request_id_generated(self, logged_app: FastAPI):
        async with AsyncClient(transport=ASGITransport(app=logged_app), base_url="http://test") as client:
            response = await client.get("/ping")

        assert response.status_code == 200
        assert len(response.headers["X-Request-ID"]) == 36

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, logged_app: FastAPI):
        async with AsyncClient(transport=ASGITransport(app=logged_app), base_url="http://test") as client:
            response = await client.get("/ping", headers={"X-Request-ID": "abc-123"})

        assert response.headers["X-Request-ID"] == "abc-123"

    @pytest.mark.asyncio
    async def test_access_log_carries_origin(self, logged_app: FastAPI, caplog):
        caplog.set_level(logging.INFO, logger="soudan.access")

        async with AsyncClient(transport=ASGITransport(app=logged_app), base_url="http://test") as client:
            await client.get("/ping", headers={"Origin": "https://blog.example"})

        records = [r for r in caplog.records if r.name == "soudan.access"]
        assert len(records) == 1
        assert records[0].origin == "https://blog.example"
        assert records[0].method == "GET"
        assert records[0].path == "/ping"
        assert records[0].status_code == 200

    @pytest.mark.asyncio
    async def test_client_errors_logged_as_warning(self, logged_app: FastAPI, caplog):
        caplog.set_level(logging.INFO, logger="soudan.access")

        async with AsyncClient(transport=ASGITransport(app=logged_app), base_url="http://test") as client:
            await client.get("/missing")

        records = [r for r in caplog.records if r.name == "soudan.access"]
        assert records[0].levelno == logging.WARNING


class TestFaultReasonLogging:
    """Rejections carry the reason the widget received"""

    @pytest.mark.asyncio
    async def test_rejection_reason_in_access_log(self, client: AsyncClient, caplog):
        caplog.set_level(logging.INFO, logger="soudan.access")

        await client.post("/", json=comment_body(), headers={"Origin": "https://evil.example"})

        records = [r for r in caplog.records if r.name == "soudan.access"]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert records[0].status_code == 400
        assert records[0].reason == "url out of scope"
        assert records[0].origin == "https://evil.example"

    @pytest.mark.asyncio
    async def test_success_has_no_reason(self, client: AsyncClient, caplog):
        caplog.set_level(logging.INFO, logger="soudan.access")

        await client.post("/", json=comment_body(), headers={"Origin": ORIGIN})

        records = [r for r in caplog.records if r.name == "soudan.access"]
        assert records[0].status_code == 200
        assert not hasattr(records[0], "reason")

    @pytest.mark.parametrize(
        "status_code,level",
        [(200, logging.INFO), (400, logging.WARNING), (404, logging.WARNING), (500, logging.ERROR)],
    )
    def test_level_for_status(self, status_code, level):
        assert level_for_status(status_code) == level


class TestStructuredFormatter:
    """Test JSON log lines"""

    def make_record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("soudan.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_formats_json(self):
        line = StructuredFormatter().format(
            self.make_record(request_id="r-1", origin="https://blog.example", reason="bad origin")
        )

        data = json.loads(line)
        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["logger"] == "soudan.test"
        assert data["request_id"] == "r-1"
        assert data["origin"] == "https://blog.example"
        assert data["reason"] == "bad origin"
        assert "status_code" not in data

    def test_request_id_filter(self):
        token = request_id_var.set("r-42")
        try:
            record = self.make_record()
            assert RequestIdFilter().filter(record)
            assert record.request_id == "r-42"
        finally:
            request_id_var.reset(token)


class TestSetupStructuredLogging:
    def test_configures_root_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_structured_logging("DEBUG", json_format=True)

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, StructuredFormatter)
            assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
