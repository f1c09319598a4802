import json

import httpx
import pytest

from assembler.errors import ExternalServiceError
from assembler.services.formatter import FormatterClient

CONFIG = {"caseInfo": {"courtName": "Superior Court", "county": "Alameda"}, "events": []}


def _client(handler, api_key="fmt-key") -> FormatterClient:
    return FormatterClient(
        base_url="https://formatter.example/",
        api_key=api_key,
        transport=httpx.MockTransport(handler),
    )


async def test_returns_package_location():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"packageUrl": "https://files.example/pkg.pdf"})

    url = await _client(handler).format_package("job-1", "user-1", CONFIG)

    assert url == "https://files.example/pkg.pdf"
    assert seen["url"] == "https://formatter.example/format"
    assert seen["auth"] == "Bearer fmt-key"
    assert seen["body"] == {"jobId": "job-1", "ownerId": "user-1", "config": CONFIG}


async def test_no_auth_header_without_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"packageUrl": "https://files.example/pkg.pdf"})

    await _client(handler, api_key="").format_package("job-1", "user-1", CONFIG)
    assert seen["auth"] is None


@pytest.mark.parametrize("response, message", [
    (httpx.Response(503, text="busy"), "Formatter error: 503"),
    (httpx.Response(200, content=b"<html>oops</html>"), "Formatter returned invalid JSON"),
    (httpx.Response(200, json={"status": "done"}), "Formatter returned no package location"),
    (httpx.Response(200, json={"packageUrl": "  "}), "Formatter returned no package location"),
    (httpx.Response(200, json=["https://files.example/pkg.pdf"]), "Formatter returned no package location"),
])
async def test_bad_responses(response, message):
    with pytest.raises(ExternalServiceError) as exc_info:
        await _client(lambda request: response).format_package("job-1", "user-1", CONFIG)
    assert exc_info.value.message == message


async def test_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ExternalServiceError, match="Formatter unreachable"):
        await _client(handler).format_package("job-1", "user-1", CONFIG)


async def test_unset_url():
    client = FormatterClient(base_url="", transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    with pytest.raises(ExternalServiceError, match="FORMATTER_URL is not set"):
        await client.format_package("job-1", "user-1", CONFIG)
