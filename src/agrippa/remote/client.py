"""
HTTP client for the remote resource store.

Wraps an httpx.AsyncClient authenticated with the bearer token persisted
in the workspace config.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from agrippa.core.errors import ConnectError
from agrippa.core.schema import RemoteFunction, RemotePhase, RemoteWorkflow
from agrippa.remote.cache import ResponseCache
from agrippa.utils.config import API_FIELDS, WorkspaceConfig, ensure_config

logger = logging.getLogger(__name__)

WORKFLOWS_PATH = "/symple.workflow/*"
PHASES_PATH = "/symple.triplet.phase"
FUNCTIONS_PATH = "/symple.model.function"


class RemoteClient:
    """
    Async client for workflows, phases and model functions.

    Args:
        config: Workspace config; `auth_token` and `rip_base_url` are required
            by the first request, not at construction.
        cache: Optional response cache used for the workflow list.
        transport: Optional httpx transport (tests pass an httpx.MockTransport).
    """

    def __init__(
        self,
        config: WorkspaceConfig,
        cache: ResponseCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            ensure_config(self.config, API_FIELDS)
            self._http = httpx.AsyncClient(
                base_url=self.config.rip_base_url.rstrip("/"),
                headers={
                    "Authorization": f"Bearer {self.config.auth_token}",
                    "Content-Type": "application/json",
                },
                timeout=30.0,
                transport=self._transport,
            )
        return self._http

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
        cache: bool = False,
    ) -> Any:
        """Send a request and decode its JSON body.

        Raises:
            ConfigurationError: token or base URL missing from the config.
            ConnectError: the server was unreachable, answered anything but 200,
                or sent a body that is not JSON.
        """
        if cache and self.cache is not None:
            cached = self.cache.get(path)
            if cached is not None:
                return cached

        client = self._client()
        try:
            response = await client.request(method, path, params=params, json=body)
        except httpx.HTTPError as e:
            url = f"{self.config.rip_base_url.rstrip('/')}{path}"
            raise ConnectError(url, 0, str(e) or type(e).__name__) from e
        logger.debug("%s %s -> %s", method, response.url, response.status_code)
        if response.status_code != 200:
            raise ConnectError(str(response.url), response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise ConnectError(str(response.url), 0, f"invalid JSON body: {e}") from e
        if cache and self.cache is not None:
            self.cache.set(path, data)
        return data

    async def get_workflows(self) -> list[RemoteWorkflow]:
        data = await self.request("GET", WORKFLOWS_PATH, cache=True)
        return [RemoteWorkflow.model_validate(w) for w in data]

    async def get_phases(self, workflow_id: int, from_code_only: bool = False) -> list[RemotePhase]:
        data = await self.request(
            "GET",
            f"{PHASES_PATH}/*",
            params={"_filter_": f"[('workflow_id', '=', {workflow_id})]"},
        )
        phases = [RemotePhase.model_validate(p) for p in data]
        if from_code_only:
            return [p for p in phases if p.is_from_code]
        return phases

    async def update_phase(self, phase_id: int, code: str) -> None:
        await self.request("PUT", f"{PHASES_PATH}/{phase_id}", body={"code": code})

    async def get_model_functions(self) -> list[RemoteFunction]:
        data = await self.request("GET", f"{FUNCTIONS_PATH}/*")
        return [RemoteFunction.model_validate(f) for f in data]

    async def update_model_function(self, function_id: int, code: str) -> None:
        await self.request("PUT", f"{FUNCTIONS_PATH}/{function_id}", body={"code": code})

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> RemoteClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
