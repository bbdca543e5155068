from __future__ import annotations

import logging
from typing import Any, Sequence

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from app.core.config import Settings, get_settings
from app.services.instagram.scrape import ScrapeConfigurationError, ScrapeLaunchError, ScrapeLauncher

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Phantombuster-Key"


class PhantomBusterError(ScrapeLaunchError):
    """Phantom Buster rejected the launch or could not be reached."""


class PhantomBusterClient(ScrapeLauncher):
    name = "phantombuster"

    def __init__(
        self,
        api_key: str | None,
        agent_id: str,
        base_url: str = "https://api.phantombuster.com/api/v2",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.agent_id = agent_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "PhantomBusterClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.phantom_buster_api_key,
            agent_id=settings.phantom_buster_agent_id,
            base_url=settings.phantom_buster_base_url,
            timeout=settings.http_timeout_seconds,
        )

    @property
    def launch_url(self) -> str:
        return f"{self.base_url}/phantoms/{self.agent_id}/launch"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _post(self, payload: dict[str, Any]) -> httpx.Response:
        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            return client.post(self.launch_url, json=payload, headers={API_KEY_HEADER: self.api_key or ""})

    def launch_many(self, post_urls: Sequence[str]) -> dict[str, Any]:
        if not self.api_key:
            raise ScrapeConfigurationError("Phantom Buster API key is not configured.")

        payload = {"argument": {"postUrls": list(post_urls)}}
        try:
            response = self._post(payload)
        except httpx.HTTPError as exc:
            raise PhantomBusterError(f"Phantom Buster request failed: {exc}") from exc

        if response.is_error:
            try:
                body: Any = response.json()
            except ValueError:
                body = response.text
            raise PhantomBusterError(
                f"Phantom Buster responded with {response.status_code}",
                status_code=response.status_code,
                body=body,
            )

        try:
            data = response.json()
        except ValueError:
            data = {}
        logger.info("Launched phantom %s for %s post(s)", self.agent_id, len(post_urls))
        return data if isinstance(data, dict) else {"data": data}

    def launch(self, post_url: str, post_id: int | None = None) -> dict[str, Any]:
        return self.launch_many([post_url])
