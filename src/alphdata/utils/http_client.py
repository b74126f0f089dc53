from __future__ import annotations

"""Async HTTP Client for Upstream Sources
========================================

A reusable HTTP client shared by the node, explorer and metadata sources.
Supports multiple named base URLs, per-endpoint headers and timeouts,
absolute URL fetches for metadata documents, and proper resource management.

Errors are mapped onto the package taxonomy:

- 404, or a 4xx whose body says "not found"  -> ``NotFoundError``
- any other HTTP error or transport failure  -> ``HTTPClientError``
  (an ``UpstreamUnavailableError``)
- a body that is not JSON                    -> ``ParseError``
"""

import asyncio
import time
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from alphdata.exceptions import NotFoundError, ParseError, UpstreamUnavailableError

__all__ = ["DataHTTPClient", "HTTPClientError"]

_ABSOLUTE = "__absolute__"


class HTTPClientError(UpstreamUnavailableError):
    """HTTP failure talking to an upstream endpoint."""

    def __init__(self, message: str, status_code: int = None, response_text: str = None,
                 url: str = None, cause: Exception = None):
        super().__init__(message, status_code=status_code, url=url, cause=cause)
        self.response_text = response_text


class DataHTTPClient:
    """Async HTTP client for upstream data sources.

    Example:
        ```python
        client = DataHTTPClient(default_timeout=30.0)
        await client.add_endpoint("node", "https://node.mainnet.alephium.org")
        balance = await client.get("node", "/addresses/1DrDy.../balance")

        document = await client.get_url("https://ipfs.io/ipfs/Qm...", timeout=15.0)
        ```
    """

    def __init__(
        self,
        default_timeout: float = 30.0,
        default_headers: Optional[Dict[str, str]] = None,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        default_rate_limit: Optional[float] = None,
    ):
        """Initialize the HTTP client.

        Args:
            default_timeout: Default timeout for all requests in seconds
            default_headers: Default headers applied to all requests
            max_retries: Retry attempts for 5xx and transport failures
            retry_delay: Base delay between retry attempts in seconds
            default_rate_limit: Default minimum seconds between requests (None = no limit)
        """
        self._default_timeout = default_timeout
        self._default_headers = default_headers or {"Accept": "application/json"}
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._default_rate_limit = default_rate_limit

        self._endpoints: Dict[str, Dict[str, Any]] = {}
        self._clients: Dict[str, httpx.AsyncClient] = {}
        self._last_request_times: Dict[str, float] = {}

        logger.debug(f"Initialized DataHTTPClient with {default_timeout}s timeout")

    async def add_endpoint(
        self,
        name: str,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        rate_limit: Optional[float] = None,
        **client_kwargs: Any,
    ) -> None:
        """Add a new endpoint configuration.

        Args:
            name: Unique identifier for this endpoint
            base_url: Base URL for the endpoint
            headers: Additional headers specific to this endpoint
            timeout: Custom timeout for this endpoint (overrides default)
            rate_limit: Minimum seconds between requests to this endpoint
            **client_kwargs: Additional arguments passed to httpx.AsyncClient
        """
        if name in self._endpoints:
            logger.warning(f"Endpoint '{name}' already exists, updating configuration")
            if name in self._clients:
                await self._clients[name].aclose()
                del self._clients[name]

        endpoint_headers = {**self._default_headers}
        if headers:
            endpoint_headers.update(headers)

        self._endpoints[name] = {
            "base_url": base_url.rstrip("/"),
            "headers": endpoint_headers,
            "timeout": timeout or self._default_timeout,
            "rate_limit": rate_limit if rate_limit is not None else self._default_rate_limit,
            "client_kwargs": client_kwargs,
        }

        logger.debug(f"Added endpoint '{name}' with base URL: {base_url}")

    def has_endpoint(self, name: str) -> bool:
        return name in self._endpoints

    def _get_client(self, endpoint_name: str) -> httpx.AsyncClient:
        """Get or create the httpx client for an endpoint.

        Raises:
            ValueError: If endpoint is not configured
        """
        if endpoint_name == _ABSOLUTE:
            if _ABSOLUTE not in self._clients:
                self._clients[_ABSOLUTE] = httpx.AsyncClient(
                    headers=self._default_headers,
                    timeout=self._default_timeout,
                    follow_redirects=True,
                )
            return self._clients[_ABSOLUTE]

        if endpoint_name not in self._endpoints:
            available = list(self._endpoints.keys())
            raise ValueError(f"Endpoint '{endpoint_name}' not configured. Available: {available}")

        if endpoint_name not in self._clients:
            config = self._endpoints[endpoint_name]
            self._clients[endpoint_name] = httpx.AsyncClient(
                base_url=config["base_url"],
                headers=config["headers"],
                timeout=config["timeout"],
                **config["client_kwargs"],
            )
            logger.debug(f"Created HTTP client for endpoint '{endpoint_name}'")

        return self._clients[endpoint_name]

    async def _apply_rate_limit(self, endpoint_name: str) -> None:
        """Sleep until the endpoint's minimum request spacing has elapsed."""
        if endpoint_name not in self._endpoints:
            return

        rate_limit = self._endpoints[endpoint_name].get("rate_limit")
        if rate_limit is None:
            return

        time_since_last = time.monotonic() - self._last_request_times.get(endpoint_name, float("-inf"))
        if time_since_last < rate_limit:
            sleep_time = rate_limit - time_since_last
            logger.debug(f"Rate limiting: sleeping {sleep_time:.2f}s for endpoint '{endpoint_name}'")
            await asyncio.sleep(sleep_time)

        self._last_request_times[endpoint_name] = time.monotonic()

    async def get(
        self,
        endpoint_name: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> Any:
        """Make a GET request to a configured endpoint and return parsed JSON."""
        return await self._make_request(
            endpoint_name, "GET", path, params=params,
            headers=headers, timeout=timeout, retries=retries
        )

    async def post(
        self,
        endpoint_name: str,
        path: str,
        json_data: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> Any:
        """Make a POST request with a JSON body and return parsed JSON."""
        return await self._make_request(
            endpoint_name, "POST", path, json_data=json_data,
            params=params, headers=headers, timeout=timeout, retries=retries
        )

    async def get_url(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> Any:
        """GET an absolute URL (token lists, metadata documents) and return parsed JSON."""
        return await self._make_request(
            _ABSOLUTE, "GET", url, headers=headers, timeout=timeout, retries=retries
        )

    async def _make_request(
        self,
        endpoint_name: str,
        method: str,
        path: str,
        json_data: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        retries: Optional[int] = None,
    ) -> Any:
        """Make an HTTP request with retry logic.

        Raises:
            NotFoundError: For authoritative "not found" answers
            HTTPClientError: For other HTTP or transport failures
            ParseError: For non-JSON bodies
        """
        client = self._get_client(endpoint_name)
        max_retries = retries if retries is not None else self._max_retries
        target = path if endpoint_name == _ABSOLUTE else f"{endpoint_name}{path}"

        await self._apply_rate_limit(endpoint_name)

        last_error: Optional[Exception] = None

        for attempt in range(max_retries + 1):
            try:
                logger.debug(f"Making {method} request to {target} (attempt {attempt + 1})")

                request_kwargs: Dict[str, Any] = {"params": params, "headers": headers}
                if json_data is not None:
                    request_kwargs["json"] = json_data
                if timeout is not None:
                    request_kwargs["timeout"] = timeout

                response = await client.request(method=method, url=path, **request_kwargs)
                response.raise_for_status()

                try:
                    return response.json()
                except ValueError as e:
                    raise ParseError(f"response from {target}", f"invalid JSON ({e})", cause=e)

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                body = e.response.text or ""
                if status == 404 or (400 <= status < 500 and "not found" in body.lower()):
                    raise NotFoundError("resource", target, cause=e)

                last_error = HTTPClientError(
                    f"HTTP {status} error from {target}: {body[:200]}",
                    status_code=status,
                    response_text=body,
                    url=target,
                    cause=e,
                )

                # Don't retry client errors (4xx), only server errors (5xx)
                if 400 <= status < 500:
                    break

            except httpx.RequestError as e:
                last_error = HTTPClientError(f"Request to {target} failed: {e!r}", url=target, cause=e)

            if attempt < max_retries:
                delay = self._retry_delay * (attempt + 1)
                logger.debug(f"Retrying request to {target} after {delay}s delay")
                await asyncio.sleep(delay)

        logger.debug(f"Request to {target} failed after {attempt + 1} attempt(s)")
        raise last_error

    def get_endpoints(self) -> Dict[str, str]:
        """Mapping of endpoint names to their base URLs."""
        return {name: config["base_url"] for name, config in self._endpoints.items()}

    async def aclose(self) -> None:
        """Close all HTTP clients and clean up resources."""
        for endpoint_name, client in self._clients.items():
            await client.aclose()
            logger.debug(f"Closed HTTP client for endpoint '{endpoint_name}'")

        self._clients.clear()
        self._endpoints.clear()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
