"""
services/translator.py — Azure AI Translator client

POST {endpoint}/translate?api-version=3.0&to={code}
Body:    [{"Text": "..."}]
Reply:   [{"translations": [{"text": "...", "to": "de"}]}]

Any non-success status, transport failure or unexpected body raises
TranslationServiceError.
"""

from __future__ import annotations

from typing import Optional

import httpx

from exceptions import TranslationServiceError
from observability.logger import get_logger

log = get_logger(__name__)

_API_VERSION = "3.0"


class TranslatorClient:
    """One translation per call. Reuses a single httpx.AsyncClient."""

    def __init__(
        self,
        api_key: str,
        endpoint: str,
        region: str = "eastus2",
        timeout: float = 15.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._headers = {
            "Ocp-Apim-Subscription-Key": api_key,
            "Ocp-Apim-Subscription-Region": region,
            "Content-Type": "application/json",
        }
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def translate(self, text: str, to: str) -> str:
        """Translate text into the language with short code `to`."""
        url = f"{self._endpoint}/translate"
        params = {"api-version": _API_VERSION, "to": to}

        try:
            response = await self._client.post(
                url, params=params, headers=self._headers, json=[{"Text": text}],
            )
        except httpx.HTTPError as e:
            log.warning("translator.transport_error", to=to, error=str(e), error_type=type(e).__name__)
            raise TranslationServiceError(
                f"Translation API call failed: {type(e).__name__}: {e}", service="translator",
            ) from e

        if response.status_code >= 400:
            log.warning("translator.http_error", to=to, status_code=response.status_code)
            raise TranslationServiceError(
                f"Translation API call failed. Status code: {response.status_code}",
                service="translator",
                status_code=response.status_code,
            )

        try:
            return response.json()[0]["translations"][0]["text"]
        except (ValueError, LookupError, TypeError) as e:
            raise TranslationServiceError(
                f"Translation API returned an unexpected body: {e}",
                service="translator",
                status_code=response.status_code,
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()
