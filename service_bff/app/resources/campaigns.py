"""
Campaigns resource service.

The campaigns API takes its version and field selection as plain query
parameters, so the console's query is forwarded through ``extra_params``.
"""

from typing import Dict, Iterable, Optional, Union

from ..directory import ServiceDomain
from ..gateway import RequestGateway, RequestOptions, ResponseEnvelope, TokenInfo, UpstreamService
from .paths import campaigns_path

CAMPAIGNS_SERVICE = UpstreamService(ServiceDomain.ACCOUNT_CONFIG_READ.value, "3.4")


class CampaignsService:
    def __init__(self, gateway: RequestGateway):
        self.api = gateway.bind(CAMPAIGNS_SERVICE)

    @staticmethod
    def build_params(v: Optional[str] = None,
                     fields: Union[str, Iterable[str], None] = None,
                     field_set: Optional[str] = None,
                     select: Optional[str] = None,
                     filter: Optional[str] = None,
                     include_deleted: bool = False) -> Dict[str, str]:
        params = {"v": v or CAMPAIGNS_SERVICE.api_version}
        if fields:
            params["fields"] = fields if isinstance(fields, str) else ",".join(fields)
        if field_set:
            params["field_set"] = field_set
        if select:
            params["select"] = select
        if filter:
            params["filter"] = filter
        if include_deleted:
            params["include_deleted"] = "true"
        return params

    async def list_campaigns(self, tenant_id: str, token: TokenInfo, **query) -> ResponseEnvelope:
        options = RequestOptions(extra_params=self.build_params(**query))
        return await self.api.fetch(tenant_id, campaigns_path(tenant_id), token, options)
