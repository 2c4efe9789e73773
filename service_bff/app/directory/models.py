"""
Directory data models.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ServiceEndpoint(BaseModel):
    """One resolved or derived directory row."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    tenant_id: str = Field(..., alias="account", description="Upstream account ID")
    service_name: str = Field(..., alias="service", description="Logical service name")
    base_uri: str = Field(..., alias="baseURI", description="Host, without scheme or path")

    def to_wire(self) -> Dict[str, str]:
        """Render with the upstream field names."""
        return self.model_dump(by_alias=True)


@dataclass(frozen=True)
class RegionInfo:
    """Region code of an account plus the zone and geo it maps to."""
    region: str
    zone: Optional[str] = None
    geo: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {"region": self.region, "zone": self.zone, "geo": self.geo}


@dataclass
class ResolvedDirectory:
    """All endpoints for one tenant: direct rows first, then derived ones.

    Holds at most one endpoint per service name. The first direct row for a
    name wins, and derived rows are only added for names no direct row has.
    """
    tenant_id: str
    endpoints: List[ServiceEndpoint] = field(default_factory=list)
    region: Optional[RegionInfo] = None
    derived_services: List[str] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        tenant_id: str,
        direct: Iterable[ServiceEndpoint],
        derived: Iterable[ServiceEndpoint] = (),
        region: Optional[RegionInfo] = None,
    ) -> "ResolvedDirectory":
        directory = cls(tenant_id=tenant_id, region=region)
        seen = set()
        for endpoint in direct:
            if endpoint.service_name not in seen:
                seen.add(endpoint.service_name)
                directory.endpoints.append(endpoint)
        for endpoint in derived:
            if endpoint.service_name not in seen:
                seen.add(endpoint.service_name)
                directory.endpoints.append(endpoint)
                directory.derived_services.append(endpoint.service_name)
        return directory

    def lookup(self, service_name: str) -> Optional[str]:
        """Return the host for ``service_name`` or ``None``."""
        for endpoint in self.endpoints:
            if endpoint.service_name == service_name:
                return endpoint.base_uri
        return None

    def __len__(self) -> int:
        return len(self.endpoints)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "region": self.region.as_dict() if self.region else None,
            "endpoints": [endpoint.to_wire() for endpoint in self.endpoints],
            "derived_services": list(self.derived_services),
        }
