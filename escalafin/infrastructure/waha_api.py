"""WAHA (WhatsApp HTTP API) client.

Each call is attempted once. Retries are the caller's decision: a send is
not idempotent on the provider side and WAHA does no deduplication.
"""

import logging
from typing import Any, Optional

import httpx

from escalafin.config import get_settings
from escalafin.core.exceptions import ProviderError
from escalafin.infrastructure.waha_config import WahaSession

settings = get_settings()
logger = logging.getLogger(__name__)


class WahaAPIClient:
    """Thin async client over the WAHA REST endpoints."""

    def __init__(
        self,
        session: WahaSession,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session
        self.base_url = session.base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.WAHA_TIMEOUT_SECONDS
        self.transport = transport
        self.headers = {"Content-Type": "application/json"}
        if session.api_key:
            self.headers["X-Api-Key"] = session.api_key

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, headers=self.headers, **kwargs)
                response.raise_for_status()
                return response.json() if response.content else {}
        except httpx.HTTPStatusError as e:
            body = e.response.text[:200] if e.response.text else "No response body"
            logger.warning(f"WAHA error {e.response.status_code} on {path}: {body}")
            raise ProviderError(
                f"WAHA respondió {e.response.status_code}",
                provider_status=e.response.status_code,
                details={"body": body},
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"WAHA connection error on {path}: {e}")
            raise ProviderError(f"No se pudo contactar a WAHA: {e}") from e
        except ValueError as e:
            raise ProviderError("WAHA devolvió una respuesta inválida") from e

    async def send_text(self, chat_id: str, text: str) -> dict:
        payload = {
            "chatId": chat_id,
            "text": text,
            "session": self.session.session_id,
        }
        return await self._request("POST", "/api/sendText", json=payload)

    async def send_file(self, chat_id: str, caption: str, file: dict, is_image: bool) -> dict:
        payload = {
            "chatId": chat_id,
            "caption": caption,
            "session": self.session.session_id,
            "file": file,
        }
        endpoint = "/api/sendImage" if is_image else "/api/sendFile"
        return await self._request("POST", endpoint, json=payload)

    async def get_session_status(self) -> dict:
        """Status of the configured session from the sessions listing."""
        sessions = await self._request("GET", "/api/sessions", params={"all": "true"})
        for item in sessions or []:
            if item.get("name") == self.session.session_id:
                return item
        return {"status": "NOT_FOUND", "details": "Session not found in WAHA response"}
