# src/gobii_tasks/api/client.py

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..core.ports import CredentialStore
from ..tasks.output_schema import OutputSchema, schema_to_wire
from ..tasks.task_models import TaskRef
from .errors import AuthError, DecodeError, ServerError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.gobii.org"
TASKS_PATH = "/tasks/browser-use/"


def _make_timeout(connect_s: float, read_s: float) -> httpx.Timeout:
    return httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s)


def _result_to_text(raw: Any) -> str | None:
    """Structured results (JSON objects/arrays/numbers) are kept as compact JSON text."""
    if raw is None:
        return None
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False, separators=(",", ":"))


class GobiiApiClient:
    """
    Async client for the Gobii browser-use task endpoints.

    - submit():       POST /tasks/browser-use/
    - fetch_status(): GET  /tasks/browser-use/{id}/

    The API key is read from the credential store on every call, so a key
    changed at runtime is picked up without rebuilding the client.
    No retries: every error is raised to the caller as a GobiiApiError subclass.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        *,
        base_url: str = DEFAULT_BASE_URL,
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url is required")
        self._credentials = credentials
        self._base_url = base_url.rstrip("/")
        self._timeout = _make_timeout(connect_timeout, read_timeout)
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Accept": "application/json"},
            )
        return self._http

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _auth_headers(self) -> dict[str, str]:
        api_key = self._credentials.get()
        if not api_key or not api_key.strip():
            raise AuthError("API key is not set")
        return {"Authorization": f"Bearer {api_key.strip()}"}

    async def _request(self, method: str, path: str, *, json_body: dict[str, Any] | None = None) -> dict[str, Any]:
        headers = self._auth_headers()
        http = self._get_http()

        try:
            resp = await http.request(method, path, headers=headers, json=json_body)
        except httpx.RequestError as e:
            raise TransportError(f"{method} {path} failed: {e.__class__.__name__}: {e}") from e

        if not resp.is_success:
            detail = resp.text[:200] if resp.text else ""
            logger.debug("Gobii API %s %s -> HTTP %s", method, path, resp.status_code)
            raise ServerError(resp.status_code, detail)

        try:
            data = resp.json()
        except ValueError as e:
            raise DecodeError(f"{method} {path}: response is not JSON") from e

        if not isinstance(data, dict):
            raise DecodeError(f"{method} {path}: expected a JSON object, got {type(data).__name__}")
        return data

    @staticmethod
    def _to_ref(data: dict[str, Any], *, fallback_id: str | None = None) -> TaskRef:
        raw_id = data.get("id", fallback_id)
        if raw_id is None or isinstance(raw_id, (dict, list, bool)):
            raise DecodeError("Task payload has no usable 'id'")
        task_id = str(raw_id).strip()
        if not task_id:
            raise DecodeError("Task payload has an empty 'id'")

        status = data.get("status")
        return TaskRef(
            id=task_id,
            status=status if isinstance(status, str) else None,
            result=_result_to_text(data.get("result")),
        )

    async def submit(self, prompt: str, output_schema: OutputSchema | None = None) -> TaskRef:
        body: dict[str, Any] = {"prompt": prompt}
        if output_schema is not None:
            body["output_schema"] = schema_to_wire(output_schema)

        data = await self._request("POST", TASKS_PATH, json_body=body)
        ref = self._to_ref(data)
        logger.info("Task submitted id=%s status=%s", ref.id, ref.status)
        return ref

    async def fetch_status(self, task_id: str) -> TaskRef:
        data = await self._request("GET", f"{TASKS_PATH}{task_id}/")
        ref = self._to_ref(data, fallback_id=task_id)
        logger.debug("Task status id=%s status=%s", ref.id, ref.status)
        return ref
