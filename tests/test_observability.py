import json

import pytest
from fastapi.responses import Response
from starlette.requests import Request

from storefront.app import json_body_middleware, request_logging_middleware
from storefront.core.logging import format_request_log


def _request(path: str = "/api/product/items", headers=None, body: bytes = b"") -> Request:
    scope = {
        "type": "http",
        "method": "POST" if body else "GET",
        "path": path,
        "headers": headers or [],
        "query_string": b"",
        "client": ("127.0.0.1", 50000),
        "scheme": "http",
        "server": ("testserver", 80),
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return Request(scope, receive)


@pytest.mark.asyncio
async def test_request_logging_middleware_logs_structured_payload(caplog):
    async def _ok(_request: Request) -> Response:
        return Response(status_code=204)

    with caplog.at_level("INFO"):
        response = await request_logging_middleware(_request(), _ok)

    request_id = response.headers.get("X-Request-ID")
    assert request_id
    line = next(msg for msg in caplog.messages if msg.startswith("request_log "))
    payload = json.loads(line.split(" ", 1)[1])
    assert payload["path"] == "/api/product/items"
    assert payload["status"] == 204
    assert payload["request_id"] == request_id
    assert payload["role"] is None


@pytest.mark.asyncio
async def test_request_logging_middleware_converts_exceptions():
    async def _fail(_request: Request) -> Response:
        raise ValueError("boom")

    request = _request(headers=[(b"x-request-id", b"abc123")])
    response = await request_logging_middleware(request, _fail)
    assert response.status_code == 500
    assert json.loads(response.body) == {"message": "Something went wrong!"}
    assert response.headers["X-Request-ID"] == "abc123"


@pytest.mark.asyncio
async def test_json_body_middleware_stores_parsed_body():
    request = _request(
        headers=[(b"content-type", b"application/json; charset=utf-8")],
        body=b'{"qty": 2}',
    )

    async def _echo(req: Request) -> Response:
        return Response(status_code=200)

    response = await json_body_middleware(request, _echo)
    assert response.status_code == 200
    assert request.state.json_body == {"qty": 2}


@pytest.mark.asyncio
async def test_json_body_middleware_ignores_other_content_types():
    request = _request(headers=[(b"content-type", b"text/plain")], body=b"{oops")

    async def _ok(req: Request) -> Response:
        return Response(status_code=200)

    response = await json_body_middleware(request, _ok)
    assert response.status_code == 200


def test_format_request_log_rounds_duration():
    line = format_request_log({"path": "/", "status": 200, "duration_ms": 1.23456})
    assert line.startswith("request_log ")
    assert json.loads(line.split(" ", 1)[1]) == {"path": "/", "status": 200, "duration_ms": 1.23}


@pytest.mark.asyncio
async def test_request_log_goes_to_access_logger(caplog):
    async def _ok(_request: Request) -> Response:
        return Response(status_code=200)

    with caplog.at_level("INFO", logger="storefront.access"):
        await request_logging_middleware(_request(), _ok)

    assert any(
        r.name == "storefront.access" and r.getMessage().startswith("request_log ")
        for r in caplog.records
    )
