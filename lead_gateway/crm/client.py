"""CRM candidates API client."""

from dataclasses import dataclass, field

import httpx
from fastapi import HTTPException

from lead_gateway.config.settings import get_settings


@dataclass
class CRMResponse:
    status_code: int
    body: dict = field(default_factory=dict)
    text: str = ""  # Raw response text, kept for error reporting

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class CRMClient:
    """Forwards validated leads to the CRM candidates endpoint."""

    def __init__(self):
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(60.0, connect=10.0))
        return self._client

    def _build_headers(self) -> dict:
        settings = get_settings()
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {settings.crm_token}",
        }

    def _base_url(self) -> str:
        return get_settings().crm_api_url.rstrip("/")

    async def create_candidate(self, payload: dict) -> CRMResponse:
        """Create a candidate from a lead form (POST)."""
        return await self._send("POST", self._base_url(), payload)

    async def update_candidate(self, token: str, payload: dict) -> CRMResponse:
        """Complete an existing candidate with a full application (PUT)."""
        return await self._send("PUT", f"{self._base_url()}/{token}", payload)

    async def _send(self, method: str, url: str, payload: dict) -> CRMResponse:
        client = await self._get_client()
        try:
            response = await client.request(method, url, json=payload, headers=self._build_headers())
        except httpx.ConnectError:
            raise HTTPException(status_code=502, detail="Cannot reach CRM")
        except httpx.TimeoutException:
            raise HTTPException(status_code=504, detail="CRM timed out")
        except httpx.HTTPError as e:
            raise HTTPException(status_code=502, detail=f"CRM error: {e}")

        if not 200 <= response.status_code < 300:
            return CRMResponse(status_code=response.status_code, text=response.text)

        try:
            body = response.json()
        except ValueError:
            body = {}
        return CRMResponse(status_code=response.status_code, body=body, text=response.text)

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
