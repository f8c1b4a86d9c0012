# services/business-rules-service/app/clients/siddhi_engine.py
from __future__ import annotations

import logging
from typing import Optional, Protocol
from urllib.parse import quote

import httpx

from app.clients.http_utils import get_http_client, response_body, retryable_call, retryable_connect
from app.config import settings
from app.errors import DeployError, UndeployRequestError, UpdateError

logger = logging.getLogger("app.clients.siddhi")


class RemoteExecutionClient(Protocol):
    """
    Deploy/update/delete of named Siddhi apps on the remote execution engine.
    """

    async def deploy(self, name: str, content: str) -> None:
        """Deploy a new app; raises DeployError when the engine rejects it."""

    async def update(self, name: str, content: str) -> bool:
        """Redeploy an existing app in place; True when the engine accepted it."""

    async def delete(self, name: str) -> bool:
        """Undeploy an app; True when it is gone from the engine. Raises UndeployRequestError when unreachable."""


class SiddhiEngineClient:
    """
    Thin async client for the Siddhi runner REST API.

      POST   /siddhi-apps          body: app text   -> 201 created
      PUT    /siddhi-apps          body: app text   -> 200 updated | 201 created
      DELETE /siddhi-apps/{name}                    -> 200 deleted | 404 unknown
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        self.base_url = base_url or settings.siddhi_engine_base_url
        user = username if username is not None else settings.siddhi_engine_username
        pwd = password if password is not None else settings.siddhi_engine_password
        self._auth = (user, pwd) if user else None

    async def _client(self) -> httpx.AsyncClient:
        return await get_http_client(self.base_url, auth=self._auth)

    async def _request(self, method: str, url: str, content: Optional[str] = None) -> httpx.Response:
        client = await self._client()
        headers = {"Content-Type": "text/plain"} if content is not None else None
        return await client.request(method, url, content=content, headers=headers)

    @retryable_call
    async def _send(self, method: str, url: str, content: Optional[str] = None) -> httpx.Response:
        return await self._request(method, url, content)

    @retryable_connect
    async def _post(self, url: str, content: str) -> httpx.Response:
        return await self._request("POST", url, content)

    # --------- Lifecycle --------- #

    async def deploy(self, name: str, content: str) -> None:
        try:
            resp = await self._post("/siddhi-apps", content)
        except httpx.HTTPError as e:
            raise DeployError(f"Siddhi app '{name}' could not be deployed: {e}", app_name=name) from e
        if resp.status_code not in (200, 201):
            raise DeployError(
                f"Siddhi app '{name}' rejected by engine: HTTP {resp.status_code}",
                app_name=name,
                status=resp.status_code,
                body=response_body(resp),
            )
        logger.info("Siddhi app deployed: %s", name)

    async def update(self, name: str, content: str) -> bool:
        try:
            resp = await self._send("PUT", "/siddhi-apps", content)
        except httpx.HTTPError as e:
            raise UpdateError(f"Siddhi app '{name}' could not be updated: {e}", app_name=name) from e
        if resp.status_code in (200, 201):
            logger.info("Siddhi app updated: %s (HTTP %d)", name, resp.status_code)
            return True
        logger.warning(
            "Siddhi app update refused: %s HTTP %d :: %s", name, resp.status_code, response_body(resp)
        )
        return False

    async def delete(self, name: str) -> bool:
        try:
            resp = await self._send("DELETE", f"/siddhi-apps/{quote(name, safe='')}")
        except httpx.HTTPError as e:
            raise UndeployRequestError(f"Siddhi app '{name}' could not be undeployed: {e}", app_name=name) from e
        if resp.status_code == 200:
            logger.info("Siddhi app undeployed: %s", name)
            return True
        if resp.status_code == 404:
            logger.info("Siddhi app %s not present on engine; treating as undeployed", name)
            return True
        logger.warning(
            "Siddhi app undeploy refused: %s HTTP %d :: %s", name, resp.status_code, response_body(resp)
        )
        return False
