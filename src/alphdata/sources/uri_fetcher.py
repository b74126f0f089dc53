from __future__ import annotations

"""NFT Metadata URI Resolution
=============================

Fetches the JSON document a token URI points at. Three transports:

- ``https://`` (including ``https://arweave.net/...``): fetched directly
- ``ipfs://<cid>`` and ``ipfs/<cid>``: rewritten to each configured public
  gateway in order until one answers

An origin-policy refusal (HTTP 401/403/451) is an expected outcome, not an
error: it yields a labeled placeholder document with ``cors_restricted`` set.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from alphdata.config import DEFAULT_IPFS_GATEWAYS, MetadataConfig
from alphdata.error_handler import Result
from alphdata.exceptions import (
    AlphDataError,
    CorsRestrictedError,
    ParseError,
    UpstreamUnavailableError,
    ValidationError,
)
from alphdata.models import NFTDocument
from alphdata.utils.formatting import IPFS_PATH_PREFIX, IPFS_SCHEME, ipfs_to_gateway
from alphdata.utils.http_client import DataHTTPClient

__all__ = ["MetadataURIFetcher", "IMAGE_FIELD_PRIORITY", "extract_image_url"]

IMAGE_FIELD_PRIORITY = (
    "image", "image_url", "imageUrl", "imageURI", "image_uri",
    "picture", "avatar", "logo", "icon", "media", "artwork",
    "animation_url", "animationUrl",
)

CORS_STATUS_CODES = frozenset({401, 403, 451})

METADATA_RESTRICTED_NAME = "NFT (Metadata Restricted)"
IPFS_RESTRICTED_NAME = "NFT (IPFS Restricted)"


def ipfs_hash(uri: str) -> Optional[str]:
    """The content id of an IPFS URI, or None for other schemes."""
    if uri.startswith(IPFS_SCHEME):
        return uri[len(IPFS_SCHEME):]
    if uri.startswith(IPFS_PATH_PREFIX):
        return uri[len(IPFS_PATH_PREFIX):]
    return None


def extract_image_url(document: Dict[str, Any], gateway: str = DEFAULT_IPFS_GATEWAYS[0]) -> Optional[str]:
    """First non-empty image-like field, with IPFS links rewritten to ``gateway``."""
    for field in IMAGE_FIELD_PRIORITY:
        value = document.get(field)
        if isinstance(value, str) and value:
            return ipfs_to_gateway(value, gateway)
    return None


class MetadataURIFetcher:
    """Resolve token URIs to ``NFTDocument`` records."""

    def __init__(self, http_client: DataHTTPClient, config: Optional[MetadataConfig] = None):
        self._http_client = http_client
        self.config = config or MetadataConfig()

    def candidate_urls(self, uri: str) -> List[str]:
        """HTTP URLs to try for ``uri``, in order."""
        content_id = ipfs_hash(uri)
        if content_id is None:
            return [uri]
        return [f"{gateway}{content_id}" for gateway in self.config.ipfs_gateways]

    async def fetch_json(self, url: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """GET a metadata document.

        Raises:
            CorsRestrictedError: If the host refuses on origin policy
            UpstreamUnavailableError: For other transport failures
            ParseError: If the body is not a JSON object
        """
        try:
            payload = await self._http_client.get_url(url, timeout=timeout or self.config.uri_timeout_seconds)
        except UpstreamUnavailableError as e:
            if e.status_code in CORS_STATUS_CODES:
                raise CorsRestrictedError(
                    f"Origin policy refused metadata request to {url}",
                    status_code=e.status_code,
                    url=url,
                    cause=e,
                )
            raise

        if not isinstance(payload, dict):
            raise ParseError("metadata document", f"expected a JSON object from {url}")
        return payload

    def build_document(self, payload: Dict[str, Any], token_uri: str) -> NFTDocument:
        attributes = payload.get("attributes")
        return NFTDocument(
            name=payload.get("name") if isinstance(payload.get("name"), str) else None,
            description=payload.get("description") if isinstance(payload.get("description"), str) else None,
            image_url=extract_image_url(payload, self.config.ipfs_gateways[0]),
            attributes=attributes if isinstance(attributes, list) else [],
            token_uri=token_uri,
            raw=payload,
        )

    @staticmethod
    def restricted_document(token_uri: str, ipfs: bool = False) -> NFTDocument:
        if ipfs:
            return NFTDocument(
                name=IPFS_RESTRICTED_NAME,
                description="NFT metadata unavailable due to origin restrictions on IPFS gateways",
                token_uri=token_uri,
                cors_restricted=True,
                original_uri=token_uri,
            )
        return NFTDocument(
            name=METADATA_RESTRICTED_NAME,
            description="NFT metadata unavailable due to origin restrictions",
            token_uri=token_uri,
            cors_restricted=True,
            original_uri=token_uri,
        )

    async def resolve(self, token_uri: Optional[str]) -> Result[NFTDocument]:
        """Fetch and normalize the document behind ``token_uri``.

        Returns a successful Result for real documents and for origin-policy
        placeholders. Every other failure comes back as a failed Result.
        """
        if not token_uri:
            return Result.failure(ValidationError("Token URI is empty"))

        is_ipfs = ipfs_hash(token_uri) is not None
        urls = self.candidate_urls(token_uri)
        errors: List[AlphDataError] = []

        for index, url in enumerate(urls):
            timeout = self.config.uri_timeout_seconds if index == 0 else self.config.gateway_timeout_seconds
            try:
                payload = await self.fetch_json(url, timeout=timeout)
            except CorsRestrictedError as e:
                if not is_ipfs:
                    logger.debug(f"[URIFetcher] Origin restriction for {token_uri[:50]}")
                    return Result.success(self.restricted_document(token_uri))
                logger.debug(f"[URIFetcher] Origin restriction on gateway {url[:60]}")
                errors.append(e)
                continue
            except AlphDataError as e:
                logger.debug(f"[URIFetcher] Fetch failed for {url[:60]}: {e.message}")
                errors.append(e)
                continue

            logger.debug(f"[URIFetcher] Resolved metadata from {url[:60]}")
            return Result.success(self.build_document(payload, token_uri))

        if is_ipfs and errors and all(isinstance(e, CorsRestrictedError) for e in errors):
            logger.debug(f"[URIFetcher] All gateways refused {token_uri[:50]} on origin policy")
            return Result.success(self.restricted_document(token_uri, ipfs=True))

        logger.warning(f"[URIFetcher] All {len(urls)} URL(s) failed for {token_uri[:50]}: {errors[-1].message}")
        return Result.failure(errors[-1])
