"""
Users resource service.
"""

from typing import Any, Dict, List, Optional

from ..directory import ServiceDomain
from ..gateway import RequestGateway, RequestOptions, ResponseEnvelope, TokenInfo, UpstreamService
from .paths import user_path, users_path

USERS_SERVICE = UpstreamService(ServiceDomain.ACCOUNT_CONFIG_WRITE.value, "6.0")


class UsersService:
    def __init__(self, gateway: RequestGateway, source_tag: str = "ccui"):
        self.api = gateway.bind(USERS_SERVICE)
        self.source_tag = source_tag

    async def get_all(self, tenant_id: str, token: TokenInfo, select: Optional[str] = None) -> ResponseEnvelope:
        options = RequestOptions(select_fields=select or "$all", source_tag=self.source_tag)
        return await self.api.fetch(tenant_id, users_path(tenant_id), token, options)

    async def get_by_id(self, tenant_id: str, user_id: str, token: TokenInfo) -> ResponseEnvelope:
        options = RequestOptions(select_fields="$all", source_tag=self.source_tag)
        return await self.api.fetch(tenant_id, user_path(tenant_id, user_id), token, options)

    async def get_revision(self, tenant_id: str, token: TokenInfo) -> Optional[str]:
        response = await self.get_all(tenant_id, token, select="id")
        return response.revision

    async def get_users_with_skill(self, tenant_id: str, token: TokenInfo, skill_id: int) -> List[Dict[str, Any]]:
        """Users whose ``skillIds`` include ``skill_id``."""
        response = await self.get_all(tenant_id, token)
        users = response.body or []
        return [user for user in users if skill_id in (user.get("skillIds") or [])]

    async def remove_many(self, tenant_id: str, token: TokenInfo, ids: List[str],
                          revision: Optional[str]) -> ResponseEnvelope:
        # Bulk delete is only served by the 5.0 users API.
        options = RequestOptions(
            api_version="5.0",
            source_tag=self.source_tag,
            revision=revision,
            extra_params={"ids": ",".join(ids)},
        )
        return await self.api.remove(tenant_id, users_path(tenant_id), token, options)
