"""
CRM (Salesforce REST) query client.

Only the object count query is needed by the relay: one
``SELECT COUNT() FROM <object>`` per named object.
"""

import asyncio
import logging
from typing import Any, Dict, List

import httpx

from ..config import Settings
from ..errors import CrmQueryError

logger = logging.getLogger("relay.crm.client")

SOQL_COUNT = "SELECT COUNT() FROM "


class CrmClient:
    """
    Runs SOQL queries against a single CRM instance.

    Attributes:
        api_version: REST API version segment (e.g. ``v58.0``)
    """

    def __init__(self, http_client: httpx.AsyncClient, api_version: str):
        self._http = http_client
        self.api_version = api_version

    @classmethod
    def from_settings(cls, settings: Settings) -> "CrmClient":
        http_client = httpx.AsyncClient(
            base_url=settings.CRM_INSTANCE_URL or "",
            headers={"authorization": f"Bearer {settings.CRM_ACCESS_TOKEN or ''}"},
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
        return cls(http_client, api_version=settings.CRM_API_VERSION)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def query(self, soql: str) -> Dict[str, Any]:
        """
        Run one SOQL query.

        Returns:
            Parsed query result (``totalSize``, ``done``, ``records``)

        Raises:
            CrmQueryError: On transport failure or non-2xx response
        """
        try:
            response = await self._http.get(
                f"/services/data/{self.api_version}/query",
                params={"q": soql},
            )
        except httpx.HTTPError as e:
            raise CrmQueryError(f"CRM request failed: {e}") from e

        if not response.is_success:
            logger.warning(
                "CRM query rejected",
                extra={"status_code": response.status_code, "soql": soql},
            )
            raise CrmQueryError.from_status(response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise CrmQueryError(f"Invalid CRM response: {e}", response.status_code) from e

    async def count(self, object_name: str) -> Dict[str, Any]:
        """Count query for one object, tagged with the object's name."""
        result = await self.query(SOQL_COUNT + object_name)
        return {**result, "name": object_name}

    async def count_objects(self, object_names: List[str]) -> List[Dict[str, Any]]:
        """
        Fan out one count query per object and join the results.

        Results keep the input order. The first failing query fails the
        whole batch.
        """
        return list(await asyncio.gather(*(self.count(name) for name in object_names)))


__all__ = ["CrmClient", "SOQL_COUNT"]
