import logging

import httpx

from assembler.config import settings
from assembler.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class FormatterClient:
    """client for the container-based PDF/A formatter. the formatter owns
    rendering, bookmarking and PDF/A conversion; we only hand it the case
    config and receive the package location."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.formatter_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.formatter_api_key
        self._transport = transport

    async def format_package(self, job_id: str, owner_id: str, config: dict) -> str:
        if not self.base_url:
            raise ExternalServiceError("FORMATTER_URL is not set")

        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        # the orchestrator bounds the overall call; no client-side timeout on top of it
        async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
            try:
                resp = await client.post(
                    f"{self.base_url}/format",
                    json={"jobId": job_id, "ownerId": owner_id, "config": config},
                    headers=headers,
                )
            except httpx.HTTPError as exc:
                raise ExternalServiceError(f"Formatter unreachable: {exc}") from exc

        if resp.status_code >= 300:
            logger.error("formatter error %s: %.500s", resp.status_code, resp.text)
            raise ExternalServiceError(f"Formatter error: {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ExternalServiceError("Formatter returned invalid JSON") from exc

        package_url = payload.get("packageUrl") if isinstance(payload, dict) else None
        if not isinstance(package_url, str) or not package_url.strip():
            raise ExternalServiceError("Formatter returned no package location")
        return package_url
