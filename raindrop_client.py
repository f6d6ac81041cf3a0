import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from config import Config
from errors import DecodeError, RemoteRejectionError, TransportError
from utils import format_query_value, quote_path_segment, tag_scope_endpoint

logger = logging.getLogger(__name__)


class RaindropClient:
    """Async HTTP client for Raindrop.io REST API v1 with Bearer auth"""

    def __init__(self, config: Config):
        self.base_url = config.base_url
        self._token = config.token
        self._timeout = config.request_timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry"""
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        if self.session:
            await self.session.close()
            self.session = None

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Make one authenticated request and decode the JSON response

        Args:
            method: HTTP method (GET, POST, PUT, DELETE)
            endpoint: API path starting with "/"
            params: Query parameters
            json_body: Request body, serialized as JSON
            headers: Extra headers; these win over the defaults

        Returns:
            Decoded JSON response

        Raises:
            RemoteRejectionError: non-2xx status
            TransportError: network failure or timeout
            DecodeError: success response that is not JSON
        """
        if self.session is None:
            raise RuntimeError("RaindropClient must be used as an async context manager")

        url = f"{self.base_url}{endpoint}"
        request_headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }
        if headers:
            request_headers.update(headers)

        query = None
        if params:
            query = {k: format_query_value(v) for k, v in params.items()}

        logger.debug(f"{method} {endpoint}")

        try:
            async with self.session.request(
                method, url, params=query, json=json_body, headers=request_headers
            ) as resp:
                if not 200 <= resp.status < 300:
                    # Error bodies are reported as-is, even when not valid text
                    body = await resp.text(errors="replace")
                    logger.warning(f"{method} {endpoint} returned HTTP {resp.status}")
                    raise RemoteRejectionError(resp.status, body)

                try:
                    text = await resp.text()
                except UnicodeDecodeError as e:
                    logger.error(f"Undecodable response from {method} {endpoint}")
                    raise DecodeError(str(e)) from e

        except asyncio.TimeoutError as e:
            logger.error(f"Request timeout: {method} {endpoint}")
            raise TransportError(f"request timed out after {self._timeout}s") from e

        except aiohttp.ClientError as e:
            logger.error(f"Request error: {method} {endpoint}: {e}")
            raise TransportError(str(e) or type(e).__name__) from e

        try:
            return json.loads(text)
        except ValueError as e:
            logger.error(f"Non-JSON response from {method} {endpoint}")
            raise DecodeError(str(e)) from e

    # Raindrops

    async def get_raindrop(self, raindrop_id: Any) -> Dict[str, Any]:
        return await self._request("GET", f"/raindrop/{quote_path_segment(raindrop_id)}")

    async def get_raindrops(
        self,
        collection_id: Any = 0,
        page: Optional[int] = None,
        perpage: Optional[int] = None,
        search: Optional[str] = None,
        sort: Optional[str] = None,
        nested: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """
        Get raindrops from a collection

        Args:
            collection_id: Collection ID (0=all, -1=unsorted, -99=trash)
            page: Page number (0-indexed)
            perpage: Results per page (max 50)
            search: Search query text
            sort: Sort order, e.g. "-created"
            nested: Include raindrops from nested collections

        Returns:
            Raindrop list response
        """
        params: Dict[str, Any] = {}

        if page is not None:
            params["page"] = page
        if perpage is not None:
            params["perpage"] = perpage
        if nested is not None:
            params["nested"] = nested

        # Empty search/sort are treated as absent
        if search:
            params["search"] = search
        if sort:
            params["sort"] = sort

        return await self._request(
            "GET", f"/raindrops/{quote_path_segment(collection_id)}", params=params
        )

    async def search_raindrops(
        self, query: str, page: Optional[int] = None, perpage: Optional[int] = None
    ) -> Dict[str, Any]:
        """Search raindrops across all collections"""
        return await self.get_raindrops(0, page=page, perpage=perpage, search=query)

    async def create_raindrop(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/raindrop", json_body=data)

    async def update_raindrop(self, raindrop_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "PUT", f"/raindrop/{quote_path_segment(raindrop_id)}", json_body=data
        )

    async def delete_raindrop(self, raindrop_id: Any) -> Dict[str, Any]:
        """Moves to trash, or deletes permanently if already in trash"""
        return await self._request("DELETE", f"/raindrop/{quote_path_segment(raindrop_id)}")

    # Collections

    async def get_collections(self) -> Dict[str, Any]:
        return await self._request("GET", "/collections")

    async def get_child_collections(self) -> Dict[str, Any]:
        return await self._request("GET", "/collections/childrens")

    async def get_collection(self, collection_id: Any) -> Dict[str, Any]:
        return await self._request("GET", f"/collection/{quote_path_segment(collection_id)}")

    async def create_collection(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/collection", json_body=data)

    async def update_collection(self, collection_id: Any, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request(
            "PUT", f"/collection/{quote_path_segment(collection_id)}", json_body=data
        )

    async def delete_collection(self, collection_id: Any) -> Dict[str, Any]:
        return await self._request(
            "DELETE", f"/collection/{quote_path_segment(collection_id)}"
        )

    async def delete_collections(self, ids: List[Any]) -> Dict[str, Any]:
        return await self._request("DELETE", "/collections", json_body={"ids": ids})

    # Tags

    async def get_tags(self, collection_id: Optional[Any] = None) -> Dict[str, Any]:
        return await self._request("GET", tag_scope_endpoint(collection_id, "/tags/0"))

    async def rename_tag(
        self, old_tag: str, new_tag: str, collection_id: Optional[Any] = None
    ) -> Dict[str, Any]:
        return await self.merge_tags([old_tag], new_tag, collection_id)

    async def merge_tags(
        self, old_tags: List[str], new_tag: str, collection_id: Optional[Any] = None
    ) -> Dict[str, Any]:
        """
        Replace every tag in old_tags with new_tag

        Args:
            old_tags: Tags to merge
            new_tag: Target tag name
            collection_id: Optional collection ID to limit scope

        Returns:
            API result
        """
        return await self._request(
            "PUT",
            tag_scope_endpoint(collection_id, "/tags"),
            json_body={"replace": new_tag, "tags": old_tags},
        )

    async def delete_tags(
        self, tags: List[str], collection_id: Optional[Any] = None
    ) -> Dict[str, Any]:
        return await self._request(
            "DELETE",
            tag_scope_endpoint(collection_id, "/tags"),
            json_body={"tags": tags},
        )

    # User

    async def get_current_user(self) -> Dict[str, Any]:
        return await self._request("GET", "/user")
