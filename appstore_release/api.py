"""HTTP transport for the App Store Connect REST API."""

from typing import Any, Dict, List, Optional

import httpx

from .auth import TokenProvider
from .errors import ApiError
from .utils import API_HOST, get_logger

logger = get_logger(__name__)


class AppStoreConnectApi:
    """
    Thin JSON:API client: authenticates requests, decodes bodies and turns any
    status >= 400 into a typed ``ApiError``.

    Args:
        token_provider: Source of the bearer token
        base_url: API host, without the ``/v1`` prefix
        timeout_seconds: Per request timeout
        transport: Optional httpx transport (``httpx.MockTransport`` in tests)
    """

    def __init__(
        self,
        token_provider: TokenProvider,
        base_url: str = API_HOST,
        timeout_seconds: float = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.token_provider = token_provider
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.transport = transport

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
        error_message: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = path if path.startswith("http") else f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.token_provider.get_bearer_token()}",
            "Accept": "application/json",
        }
        query = None
        if params:
            query = {k: (v.value if hasattr(v, "value") else v) for k, v in params.items() if v is not None}

        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            response = await client.request(method, url, headers=headers, params=query, json=body)

        payload = _decode(response)
        if response.status_code >= 400:
            errors = _error_details(payload)
            context = error_message or f"App Store Connect API request {method} {path} failed"
            logger.debug(f"{method} {url} -> {response.status_code}: {errors}")
            raise ApiError.from_response(context, response.status_code, errors)

        return payload

    async def download(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        accept: str = "application/a-gzip",
        error_message: Optional[str] = None,
    ) -> bytes:
        """GET a binary resource such as a gzipped report and return the raw body"""
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self.token_provider.get_bearer_token()}",
            "Accept": accept,
        }
        query = {k: v for k, v in (params or {}).items() if v is not None}

        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
            response = await client.get(url, headers=headers, params=query)

        if response.status_code >= 400:
            errors = _error_details(_decode(response))
            context = error_message or f"App Store Connect API download {path} failed"
            raise ApiError.from_response(context, response.status_code, errors)

        return response.content

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None, error_message: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("GET", path, params=params, error_message=error_message)

    async def post(self, path: str, body: Dict[str, Any], error_message: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("POST", path, body=body, error_message=error_message)

    async def patch(self, path: str, body: Dict[str, Any], error_message: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("PATCH", path, body=body, error_message=error_message)

    async def get_all(self, path: str, params: Optional[Dict[str, Any]] = None, error_message: Optional[str] = None) -> List[Dict[str, Any]]:
        """Collect ``data`` from every page of a list endpoint by following ``links.next``"""
        records: List[Dict[str, Any]] = []
        next_url: Optional[str] = path
        while next_url:
            page = await self.get(next_url, params=params, error_message=error_message)
            # the next link already carries the query string
            params = None
            records.extend(page.get("data") or [])
            next_url = (page.get("links") or {}).get("next")
        return records


def _decode(response: httpx.Response) -> Dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError:
        if response.status_code >= 400:
            return {}
        raise ApiError(
            f"Invalid JSON response from App Store Connect API: {response.text[:500]}",
            status_code=response.status_code,
        )
    return data if isinstance(data, dict) else {"data": data}


def _error_details(payload: Dict[str, Any]) -> List[str]:
    details = []
    for error in payload.get("errors") or []:
        if isinstance(error, dict) and error.get("detail"):
            details.append(str(error["detail"]))
    return details
