"""
Domain resolution for upstream services, cached per tenant.

The upstream directory (CSDS) maps an account to the hosts of its services.
One directory call returns every directly-resolved row for the account; the
resolver then derives the auxiliary AI/bot/proactive hosts from the
account's region code and caches the combined directory, and the region
info separately, for a fixed TTL.
"""

import asyncio
from enum import Enum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from shared.errors import DomainNotFoundError, DomainResolutionError, ValidationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..caching import CacheStore
from ..ratelimit import RateLimitedDispatcher
from .constants import (
    CACHE_PREFIX_DIRECTORY,
    CACHE_PREFIX_REGION,
    DEFAULT_DIRECTORY_TTL,
    DIRECTORY_API_VERSION,
    DIRECTORY_PATH,
    REGION_BEARING_SERVICE,
)
from .derivation import derive_endpoints, find_region
from .models import RegionInfo, ResolvedDirectory, ServiceEndpoint


DEFAULT_DIRECTORY_BASE_URL = "https://api.liveperson.net"

ServiceName = Union[str, Enum]


def service_key(service_name: ServiceName) -> str:
    """Plain string form of a service name (enum members use their value)."""
    if isinstance(service_name, Enum):
        return str(service_name.value)
    return service_name


class DomainResolver:
    """Resolves (tenant, service name) to a host through a cached directory."""

    def __init__(
        self,
        cache: CacheStore,
        dispatcher: RateLimitedDispatcher,
        directory_base_url: str = DEFAULT_DIRECTORY_BASE_URL,
        ttl_seconds: float = DEFAULT_DIRECTORY_TTL,
        *,
        region_service: str = REGION_BEARING_SERVICE,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.cache = cache
        self.dispatcher = dispatcher
        self.directory_base_url = directory_base_url.rstrip("/")
        self.ttl_seconds = ttl_seconds
        self.region_service = region_service
        self.metrics = metrics
        self.logger = get_logger("bff.domain_resolver")
        self._inflight: Dict[str, "asyncio.Future[ResolvedDirectory]"] = {}
        # Bumped by invalidate(); a load started under an older generation
        # must not write back to the cache.
        self._generations: Dict[str, int] = {}

    async def resolve(self, tenant_id: str, service_name: ServiceName) -> str:
        """Return the host for ``service_name`` in ``tenant_id``'s directory.

        Raises ``DomainNotFoundError`` when the name is absent even after a
        fresh resolution; that outcome is never cached.
        """
        tenant_id = self._require_tenant(tenant_id)
        name = service_key(service_name)

        directory = self._cached_directory(tenant_id)
        if directory is not None:
            base_uri = directory.lookup(name)
            if base_uri:
                return base_uri
            self.logger.info(
                "Service missing from cached directory, refreshing",
                tenant_id=tenant_id,
                service_name=name
            )

        directory = await self.refresh(tenant_id)
        base_uri = directory.lookup(name)
        if not base_uri:
            self.logger.warning(
                "Domain not found for service",
                tenant_id=tenant_id,
                service_name=name,
                available=len(directory)
            )
            raise DomainNotFoundError(tenant_id, name)
        return base_uri

    async def get_directory(self, tenant_id: str) -> ResolvedDirectory:
        """Return the tenant's full directory, resolving it on a cache miss."""
        tenant_id = self._require_tenant(tenant_id)
        directory = self._cached_directory(tenant_id)
        if directory is not None:
            return directory
        return await self.refresh(tenant_id)

    def get_region(self, tenant_id: str) -> Optional[RegionInfo]:
        """Cached region info for the tenant, if a live entry exists."""
        return self.cache.get(self._region_key(tenant_id))

    async def refresh(self, tenant_id: str) -> ResolvedDirectory:
        """Issue a fresh directory call.

        Concurrent refreshes for the same tenant share one upstream call; a
        failed call is not remembered and the next refresh tries again.
        """
        tenant_id = self._require_tenant(tenant_id)
        pending = self._inflight.get(tenant_id)
        if pending is None:
            pending = asyncio.ensure_future(
                self._load_directory(tenant_id, self._generations.get(tenant_id, 0))
            )
            self._inflight[tenant_id] = pending

            def _forget(future: "asyncio.Future[ResolvedDirectory]") -> None:
                if self._inflight.get(tenant_id) is future:
                    del self._inflight[tenant_id]
                if not future.cancelled():
                    # Mark the outcome retrieved even when every waiter was cancelled.
                    future.exception()

            pending.add_done_callback(_forget)

        return await asyncio.shield(pending)

    def invalidate(self, tenant_id: str) -> None:
        """Drop the tenant's directory and region entries. Idempotent."""
        removed_directory = self.cache.delete(self._directory_key(tenant_id))
        removed_region = self.cache.delete(self._region_key(tenant_id))
        self._inflight.pop(tenant_id, None)
        self._generations[tenant_id] = self._generations.get(tenant_id, 0) + 1
        self.logger.info(
            "Directory cache invalidated",
            tenant_id=tenant_id,
            had_directory=removed_directory,
            had_region=removed_region
        )

    async def _load_directory(self, tenant_id: str, generation: int) -> ResolvedDirectory:
        url = f"{self.directory_base_url}{DIRECTORY_PATH.format(tenant_id=quote(tenant_id, safe=''))}"

        try:
            response = await self.dispatcher.request(
                "GET",
                url,
                params={"version": DIRECTORY_API_VERSION},
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as exc:
            self._record_resolution("error")
            self.logger.error("Directory request failed", tenant_id=tenant_id, url=url, error=str(exc))
            raise DomainResolutionError(
                tenant_id,
                f"Directory request failed: {exc}",
                {"url": url, "error": exc.__class__.__name__}
            ) from exc

        if response.status_code >= 400:
            self._record_resolution("error")
            self.logger.error(
                "Directory request returned error status",
                tenant_id=tenant_id,
                url=url,
                status_code=response.status_code
            )
            raise DomainResolutionError(
                tenant_id,
                f"Directory request returned status {response.status_code}",
                {"url": url, "upstream_status": response.status_code, "upstream_body": response.text[:500]}
            )

        try:
            endpoints = self._parse_endpoints(tenant_id, response.json())
        except (ValueError, PydanticValidationError) as exc:
            self._record_resolution("error")
            self.logger.error("Directory response could not be parsed", tenant_id=tenant_id, error=str(exc))
            raise DomainResolutionError(
                tenant_id,
                "Directory response could not be parsed",
                {"url": url, "error": str(exc)}
            ) from exc

        region = find_region(endpoints, self.region_service)
        derived = derive_endpoints(tenant_id, region) if region else []
        directory = ResolvedDirectory.build(tenant_id, endpoints, derived, region)

        if self._generations.get(tenant_id, 0) == generation:
            self.cache.set(self._directory_key(tenant_id), directory, ttl=self.ttl_seconds)
            if region:
                self.cache.set(self._region_key(tenant_id), region, ttl=self.ttl_seconds)
            else:
                self.cache.delete(self._region_key(tenant_id))
        else:
            self.logger.info("Directory invalidated during load, not caching", tenant_id=tenant_id)

        self._record_resolution("success")
        self.logger.info(
            "Directory resolved",
            tenant_id=tenant_id,
            direct=len(endpoints),
            derived=len(directory.derived_services),
            region=region.region if region else None
        )
        return directory

    def _parse_endpoints(self, tenant_id: str, payload: Any) -> List[ServiceEndpoint]:
        if isinstance(payload, dict):
            rows = payload.get("baseURIs") or []
        elif isinstance(payload, list):
            rows = payload
        else:
            raise ValueError(f"Unexpected directory payload type {type(payload).__name__}")

        endpoints = []
        for row in rows:
            if not isinstance(row, dict):
                raise ValueError("Directory row is not an object")
            endpoints.append(ServiceEndpoint.model_validate({"account": tenant_id, **row}))
        return endpoints

    def _cached_directory(self, tenant_id: str) -> Optional[ResolvedDirectory]:
        directory = self.cache.get(self._directory_key(tenant_id))
        if self.metrics:
            self.metrics.increment_counter("directory_cache_total", result="hit" if directory is not None else "miss")
        return directory

    def _record_resolution(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("directory_resolutions_total", outcome=outcome)

    @staticmethod
    def _require_tenant(tenant_id: str) -> str:
        if not tenant_id or not str(tenant_id).strip():
            raise ValidationError("No accountId provided", {"field": "tenant_id"})
        return str(tenant_id).strip()

    @staticmethod
    def _directory_key(tenant_id: str) -> str:
        return f"{CACHE_PREFIX_DIRECTORY}{tenant_id}"

    @staticmethod
    def _region_key(tenant_id: str) -> str:
        return f"{CACHE_PREFIX_REGION}{tenant_id}"
