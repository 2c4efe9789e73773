"""
Uniform request gateway for upstream resource APIs.

Resource services describe *what* to call (service name, API version, path,
body); the gateway owns *how*: host resolution, query-string and auth policy,
conditional-write headers, rate-limited dispatch, revision discovery and
error context. Each verb either returns a ``ResponseEnvelope`` or raises.
"""

import time
from typing import Any, Dict, Optional

import httpx

from shared.errors import PreconditionRequiredError, UpstreamRequestError
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from ..directory import DomainResolver, service_key
from ..ratelimit import RateLimitedDispatcher
from .options import RequestOptions, ResponseEnvelope, TokenInfo, UpstreamService
from .policy import bearer_header, build_query
from .revision import IF_MATCH_HEADER, extract_revision

JSON_MEDIA_TYPE = "application/json"

_NO_BODY = object()


class RequestGateway:
    """Composes domain resolution, request policy and dispatch into HTTP verbs."""

    def __init__(
        self,
        resolver: DomainResolver,
        dispatcher: RateLimitedDispatcher,
        *,
        scheme: str = "https",
        metrics: Optional[MetricsCollector] = None,
    ):
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.scheme = scheme
        self.metrics = metrics
        self.logger = get_logger("bff.request_gateway")

    def bind(self, service: UpstreamService) -> "ServiceGateway":
        """Gateway verbs pre-bound to one upstream service."""
        return ServiceGateway(self, service)

    async def fetch(self, service: UpstreamService, tenant_id: str, path: str, token: TokenInfo,
                    options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        """GET ``path``. A revision, if given, is sent as ``If-Match``."""
        return await self._send("GET", service, tenant_id, path, token, _NO_BODY, options)

    async def create(self, service: UpstreamService, tenant_id: str, path: str, token: TokenInfo,
                     body: Any = None, options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        """POST ``body`` to ``path``."""
        return await self._send("POST", service, tenant_id, path, token, body, options)

    async def replace(self, service: UpstreamService, tenant_id: str, path: str, token: TokenInfo,
                      body: Any = None, options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        """PUT ``body`` to ``path``. Requires ``options.revision``."""
        self._require_revision("PUT", path, options)
        return await self._send("PUT", service, tenant_id, path, token, body, options)

    async def remove(self, service: UpstreamService, tenant_id: str, path: str, token: TokenInfo,
                     options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        """DELETE ``path``. Requires ``options.revision``."""
        self._require_revision("DELETE", path, options)
        return await self._send("DELETE", service, tenant_id, path, token, _NO_BODY, options)

    async def modify(self, service: UpstreamService, tenant_id: str, path: str, token: TokenInfo,
                     body: Any = None, options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        """PATCH ``path``. A revision is honored but not required."""
        return await self._send("PATCH", service, tenant_id, path, token, body, options)

    @staticmethod
    def _require_revision(method: str, path: str, options: Optional[RequestOptions]) -> None:
        if options is None or not options.revision:
            raise PreconditionRequiredError(method, path)

    async def _send(self, method: str, service: UpstreamService, tenant_id: str, path: str,
                    token: TokenInfo, body: Any, options: Optional[RequestOptions]) -> ResponseEnvelope:
        options = options or RequestOptions()
        service_name = service_key(service.service_name)
        headers = self._build_headers(token, options, has_body=body is not _NO_BODY)

        host = await self.resolver.resolve(tenant_id, service_name)
        url = self._build_url(host, path, build_query(options, service.api_version))

        request_kwargs: Dict[str, Any] = {"headers": headers}
        if body is not _NO_BODY:
            request_kwargs["json"] = body
        request = self.dispatcher.build_request(method, url, **request_kwargs)

        self.logger.debug(
            "Upstream request",
            method=method,
            tenant_id=tenant_id,
            service_name=service_name,
            path=path,
            conditional=bool(options.revision)
        )

        start = time.perf_counter()
        try:
            response = await self.dispatcher.dispatch(request)
        except httpx.HTTPError as exc:
            self._record(method, "transport_error", start)
            self.logger.error(
                "Upstream request failed",
                method=method,
                tenant_id=tenant_id,
                service_name=service_name,
                path=path,
                error=str(exc)
            )
            raise UpstreamRequestError(
                tenant_id,
                path,
                f"{method} {path} failed: {exc.__class__.__name__}",
                method=method,
                service_name=service_name,
            ) from exc

        self._record(method, str(response.status_code), start)

        if response.status_code >= 400:
            upstream_body = self._decode_body(response)
            self.logger.error(
                "Upstream request rejected",
                method=method,
                tenant_id=tenant_id,
                service_name=service_name,
                path=path,
                status_code=response.status_code
            )
            raise UpstreamRequestError(
                tenant_id,
                path,
                f"{method} {path} returned status {response.status_code}",
                method=method,
                service_name=service_name,
                upstream_status=response.status_code,
                upstream_body=upstream_body,
            )

        return ResponseEnvelope(
            body=self._decode_body(response),
            revision=extract_revision(response.headers),
            raw_headers=dict(response.headers),
            status_code=response.status_code,
        )

    @staticmethod
    def _build_headers(token: TokenInfo, options: RequestOptions, has_body: bool) -> Dict[str, str]:
        headers = {
            "Authorization": bearer_header(token),
            "Accept": JSON_MEDIA_TYPE,
        }
        if has_body:
            headers["Content-Type"] = JSON_MEDIA_TYPE
        if options.revision:
            headers[IF_MATCH_HEADER] = options.revision
        return headers

    def _build_url(self, host: str, path: str, query: str) -> str:
        if not path.startswith("/"):
            path = f"/{path}"
        url = f"{self.scheme}://{host}{path}"
        return f"{url}?{query}" if query else url

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return response.json()
            except ValueError:
                return response.text
        return response.text

    def _record(self, method: str, status: str, start: float) -> None:
        if self.metrics:
            self.metrics.increment_counter("upstream_requests_total", method=method, status=status)
            self.metrics.observe_histogram(
                "upstream_request_duration_seconds", time.perf_counter() - start, method=method
            )


class ServiceGateway:
    """The gateway verbs for one declared upstream service."""

    def __init__(self, gateway: RequestGateway, service: UpstreamService):
        self.gateway = gateway
        self.service = service

    async def fetch(self, tenant_id: str, path: str, token: TokenInfo,
                    options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        return await self.gateway.fetch(self.service, tenant_id, path, token, options)

    async def create(self, tenant_id: str, path: str, token: TokenInfo, body: Any = None,
                     options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        return await self.gateway.create(self.service, tenant_id, path, token, body, options)

    async def replace(self, tenant_id: str, path: str, token: TokenInfo, body: Any = None,
                      options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        return await self.gateway.replace(self.service, tenant_id, path, token, body, options)

    async def remove(self, tenant_id: str, path: str, token: TokenInfo,
                     options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        return await self.gateway.remove(self.service, tenant_id, path, token, options)

    async def modify(self, tenant_id: str, path: str, token: TokenInfo, body: Any = None,
                     options: Optional[RequestOptions] = None) -> ResponseEnvelope:
        return await self.gateway.modify(self.service, tenant_id, path, token, body, options)
