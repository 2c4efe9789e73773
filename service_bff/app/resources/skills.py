"""
Skills resource service.
"""

from typing import Any, Dict, List, Optional, Union

from shared.logging import get_logger

from ..directory import ServiceDomain
from ..gateway import RequestGateway, RequestOptions, ResponseEnvelope, TokenInfo, UpstreamService
from .paths import skill_path, skills_path

SKILLS_SERVICE = UpstreamService(ServiceDomain.ACCOUNT_CONFIG_WRITE.value, "2.0")

SkillId = Union[int, str]


class SkillsService:
    """Account-config skills: list, read, create, update, delete."""

    def __init__(self, gateway: RequestGateway, source_tag: str = "ccui"):
        self.api = gateway.bind(SKILLS_SERVICE)
        self.source_tag = source_tag
        self.logger = get_logger("bff.skills")

    async def get_all(self, tenant_id: str, token: TokenInfo, select: Optional[str] = None,
                      include_deleted: bool = False) -> ResponseEnvelope:
        options = RequestOptions(
            select_fields=select or "$all",
            include_deleted=include_deleted,
            source_tag=self.source_tag,
        )
        return await self.api.fetch(tenant_id, skills_path(tenant_id), token, options)

    async def get_by_id(self, tenant_id: str, skill_id: SkillId, token: TokenInfo) -> ResponseEnvelope:
        options = RequestOptions(select_fields="$all", source_tag=self.source_tag)
        return await self.api.fetch(tenant_id, skill_path(tenant_id, skill_id), token, options)

    async def get_revision(self, tenant_id: str, token: TokenInfo) -> Optional[str]:
        """Current revision of the skills collection (cheap ``select=id`` read)."""
        response = await self.get_all(tenant_id, token, select="id")
        return response.revision

    async def create(self, tenant_id: str, token: TokenInfo, data: Union[Dict[str, Any], List[Dict[str, Any]]],
                     revision: Optional[str] = None) -> ResponseEnvelope:
        options = RequestOptions(source_tag=self.source_tag, revision=revision)
        return await self.api.create(tenant_id, skills_path(tenant_id), token, data, options)

    async def update(self, tenant_id: str, skill_id: SkillId, token: TokenInfo, data: Dict[str, Any],
                     revision: Optional[str]) -> ResponseEnvelope:
        options = RequestOptions(source_tag=self.source_tag, revision=revision)
        return await self.api.replace(tenant_id, skill_path(tenant_id, skill_id), token, data, options)

    async def remove(self, tenant_id: str, skill_id: SkillId, token: TokenInfo,
                     revision: Optional[str]) -> ResponseEnvelope:
        options = RequestOptions(source_tag=self.source_tag, revision=revision)
        self.logger.info("Deleting skill", tenant_id=tenant_id, skill_id=str(skill_id))
        return await self.api.remove(tenant_id, skill_path(tenant_id, skill_id), token, options)
