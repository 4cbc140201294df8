"""HTTP store adapter.

Implements the rule catalog and annotation store ports against a REST API:

- ``GET  {base_url}/rules``
- ``GET  {base_url}/annotations/conversation/{conversation_id}``
- ``POST {base_url}/annotations``

Transport and status errors are raised as ``StoreError`` so the session only
has to deal with one failure type.
"""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from adapters.records import annotation_from_record, rule_from_record
from core.errors import RecordError, StoreError
from core.models import Annotation, AnnotationPayload, Rule

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_USER_AGENT = "spanscope/1.0"


class HttpStore:
    """REST client that satisfies both store ports."""

    def __init__(
        self,
        base_url: str,
        api_token: Optional[str] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        headers = {"Accept": "application/json", "User-Agent": DEFAULT_USER_AGENT}
        if api_token:
            headers["Authorization"] = f"Bearer {api_token}"
        self._base_url = base_url.rstrip("/")
        self._headers = headers
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = http_client is None

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_all(self) -> list[Rule]:
        data = await self._request("GET", "/rules")
        return [rule_from_record(item) for item in self._expect_list(data, "rules")]

    async def get_by_conversation(self, conversation_id: str) -> list[Annotation]:
        path = f"/annotations/conversation/{quote(conversation_id, safe='')}"
        data = await self._request("GET", path)
        return [annotation_from_record(item) for item in self._expect_list(data, "annotations")]

    async def create(self, payload: AnnotationPayload) -> Annotation:
        body = payload.to_payload()
        data = await self._request("POST", "/annotations", json=body)
        if not isinstance(data, dict):
            raise RecordError("create response must be an annotation object")
        # Some backends echo only the id; fall back to the submitted body.
        merged = {**body, **data}
        return annotation_from_record(merged)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(method, url, headers=self._headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:200]
            raise StoreError(f"{method} {path} failed with {exc.response.status_code}: {body}") from exc
        except httpx.RequestError as exc:
            raise StoreError(f"{method} {path} failed: {exc}") from exc

        LOGGER.debug("%s %s -> %s", method, path, response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise RecordError(f"{method} {path} returned invalid JSON") from exc

    @staticmethod
    def _expect_list(data: Any, key: str) -> list:
        if isinstance(data, dict):
            data = data.get(key)
        if not isinstance(data, list):
            raise RecordError(f"expected a list of {key}")
        return data
