"""
Console BFF service for the Console BFF Access Layer.
"""

from typing import Any, Dict, List, Optional, Union

import httpx
from fastapi import Body, Header, Query
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import AuthenticationError
from shared.logging import set_tenant_context

from .caching import CacheStore
from .directory import DomainResolver
from .gateway import RequestGateway, ResponseEnvelope
from .gateway.revision import REVISION_HEADER
from .ratelimit import RateLimitedDispatcher
from .resources import CampaignsService, SkillsService, UsersService


class BffService(BaseService):
    """Console BFF service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, *, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__("bff", 8080, config)

        self.cache = CacheStore(default_ttl=self.config.directory_cache_ttl_seconds)
        self.dispatcher = RateLimitedDispatcher(
            max_concurrent=self.config.dispatcher_max_concurrent,
            min_interval=self.config.dispatcher_min_interval_ms / 1000.0,
            client=http_client,
            timeout=self.config.upstream_timeout_seconds,
            metrics=self.metrics,
        )
        self.resolver = DomainResolver(
            self.cache,
            self.dispatcher,
            self.config.directory_base_url,
            self.config.directory_cache_ttl_seconds,
            metrics=self.metrics,
        )
        self.gateway = RequestGateway(self.resolver, self.dispatcher, metrics=self.metrics)

        self.skills = SkillsService(self.gateway, source_tag=self.config.default_source_tag)
        self.users = UsersService(self.gateway, source_tag=self.config.default_source_tag)
        self.campaigns = CampaignsService(self.gateway)

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.dispatcher.aclose()

        self._setup_directory_routes()
        self._setup_account_config_routes()

    async def _check_dependencies(self) -> Dict[str, str]:
        return {
            "dispatcher": "closed" if self.dispatcher.client.is_closed else "ok",
            "directory_cache": f"{len(self.cache)} entries",
        }

    @staticmethod
    def _require_token(authorization: Optional[str]) -> str:
        if not authorization:
            raise AuthenticationError("Missing Authorization header")
        return authorization

    @staticmethod
    def _envelope_response(envelope: ResponseEnvelope, status_code: int = 200) -> JSONResponse:
        headers = {REVISION_HEADER: envelope.revision} if envelope.revision else None
        return JSONResponse(status_code=status_code, content=envelope.as_dict(), headers=headers)

    def _setup_directory_routes(self):
        """Set up domain resolution routes."""

        @self.app.get("/api/v1/account/{tenant_id}/domains")
        async def get_domains(tenant_id: str):
            """Resolved directory (direct and derived hosts) for an account."""
            set_tenant_context(tenant_id)
            directory = await self.resolver.get_directory(tenant_id)
            return directory.as_dict()

        @self.app.get("/api/v1/account/{tenant_id}/domains/{service_name}")
        async def get_domain(tenant_id: str, service_name: str):
            """Host for one service."""
            set_tenant_context(tenant_id)
            base_uri = await self.resolver.resolve(tenant_id, service_name)
            return {"tenant_id": tenant_id, "service": service_name, "baseURI": base_uri}

        @self.app.delete("/api/v1/account/{tenant_id}/domains")
        async def invalidate_domains(tenant_id: str):
            """Drop cached domains for an account (e.g. after re-authentication)."""
            set_tenant_context(tenant_id)
            self.resolver.invalidate(tenant_id)
            return {"tenant_id": tenant_id, "invalidated": True}

        @self.app.get("/api/v1/dispatcher/stats")
        async def get_dispatcher_stats():
            return self.dispatcher.stats()

        @self.app.get("/api/v1/cache/stats")
        async def get_cache_stats():
            return self.cache.get_stats()

    def _setup_account_config_routes(self):
        """Set up account-config resource routes."""

        @self.app.get("/api/v1/account-config/{tenant_id}/skills")
        async def get_skills(
            tenant_id: str,
            authorization: Optional[str] = Header(None),
            select: Optional[str] = Query(None),
            include_deleted: bool = Query(False, alias="includeDeleted"),
        ):
            set_tenant_context(tenant_id)
            token = self._require_token(authorization)
            envelope = await self.skills.get_all(tenant_id, token, select=select, include_deleted=include_deleted)
            return self._envelope_response(envelope)

        @self.app.get("/api/v1/account-config/{tenant_id}/skills/{skill_id}")
        async def get_skill(tenant_id: str, skill_id: str, authorization: Optional[str] = Header(None)):
            set_tenant_context(tenant_id)
            token = self._require_token(authorization)
            envelope = await self.skills.get_by_id(tenant_id, skill_id, token)
            return self._envelope_response(envelope)

        @self.app.post("/api/v1/account-config/{tenant_id}/skills")
        async def create_skill(
            tenant_id: str,
            payload: Union[Dict[str, Any], List[Dict[str, Any]]] = Body(...),
            authorization: Optional[str] = Header(None),
            if_match: Optional[str] = Header(None, alias="If-Match"),
        ):
            set_tenant_context(tenant_id)
            token = self._require_token(authorization)
            envelope = await self.skills.create(tenant_id, token, payload, revision=if_match)
            return self._envelope_response(envelope, status_code=201)

        @self.app.put("/api/v1/account-config/{tenant_id}/skills/{skill_id}")
        async def update_skill(
            tenant_id: str,
            skill_id: str,
            payload: Dict[str, Any] = Body(...),
            authorization: Optional[str] = Header(None),
            if_match: Optional[str] = Header(None, alias="If-Match"),
        ):
            set_tenant_context(tenant_id)
            token = self._require_token(authorization)
            envelope = await self.skills.update(tenant_id, skill_id, token, payload, revision=if_match)
            return self._envelope_response(envelope)

        @self.app.delete("/api/v1/account-config/{tenant_id}/skills/{skill_id}")
        async def delete_skill(
            tenant_id: str,
            skill_id: str,
            authorization: Optional[str] = Header(None),
            if_match: Optional[str] = Header(None, alias="If-Match"),
        ):
            set_tenant_context(tenant_id)
            token = self._require_token(authorization)
            envelope = await self.skills.remove(tenant_id, skill_id, token, revision=if_match)
            return self._envelope_response(envelope)

        @self.app.get("/api/v1/account-config/{tenant_id}/users")
        async def get_users(
            tenant_id: str,
            authorization: Optional[str] = Header(None),
            select: Optional[str] = Query(None),
        ):
            set_tenant_context(tenant_id)
            token = self._require_token(authorization)
            envelope = await self.users.get_all(tenant_id, token, select=select)
            return self._envelope_response(envelope)

        @self.app.get("/api/v1/account-config/{tenant_id}/users/{user_id}")
        async def get_user(tenant_id: str, user_id: str, authorization: Optional[str] = Header(None)):
            set_tenant_context(tenant_id)
            token = self._require_token(authorization)
            envelope = await self.users.get_by_id(tenant_id, user_id, token)
            return self._envelope_response(envelope)

        @self.app.get("/api/v1/account-config/{tenant_id}/campaigns")
        async def get_campaigns(
            tenant_id: str,
            authorization: Optional[str] = Header(None),
            v: Optional[str] = Query(None),
            fields: Optional[str] = Query(None),
            field_set: Optional[str] = Query(None),
            select: Optional[str] = Query(None),
            include_deleted: bool = Query(False),
        ):
            set_tenant_context(tenant_id)
            token = self._require_token(authorization)
            envelope = await self.campaigns.list_campaigns(
                tenant_id,
                token,
                v=v,
                fields=fields,
                field_set=field_set,
                select=select,
                include_deleted=include_deleted,
            )
            return self._envelope_response(envelope)


def create_app(config: Optional[ServiceConfig] = None, *, http_client: Optional[httpx.AsyncClient] = None):
    """Create FastAPI application."""
    service = BffService(config, http_client=http_client)
    return service.app


if __name__ == "__main__":
    service = BffService()
    service.run()
