"""
Derived endpoints for services the upstream directory does not return.

Conversation Builder, AI and proactive messaging hosts are computed from the
region code embedded in the region-bearing service's host. The templates
below are a fixed lookup table: some key off the region, some off the zone
and one off the geo, and that split is reproduced as observed upstream.
"""

from string import Formatter
from typing import Dict, List, Optional, Sequence, Tuple

from .constants import REGION_BEARING_SERVICE, ServiceDomain
from .models import RegionInfo, ServiceEndpoint


REGION_ZONE_MAP: Dict[str, str] = {
    "va": "z1",
    "lo": "z2",
    "sy": "z3",
}

ZONE_GEO_MAP: Dict[str, str] = {
    "z1": "p-us",
    "z2": "p-eu",
    "z3": "p-au",
}

DERIVED_ENDPOINT_TEMPLATES: Tuple[Tuple[str, str], ...] = (
    (ServiceDomain.AI_STUDIO.value, "aistudio-{geo}.liveperson.net"),
    (ServiceDomain.BOT_LOGS.value, "{region}.bc-bot.liveperson.net"),
    (ServiceDomain.BOT.value, "{region}.bc-bot.liveperson.net"),
    (ServiceDomain.BOT_PLATFORM.value, "{region}.bc-platform.liveperson.net"),
    (ServiceDomain.KB.value, "{region}.bc-kb.liveperson.net"),
    (ServiceDomain.CONTEXT.value, "{region}.context.liveperson.net"),
    (ServiceDomain.RECOMMENDATION.value, "{zone}.askmaven.liveperson.net"),
    (ServiceDomain.PROACTIVE_HANDOFF.value, "{region}.handoff.liveperson.net"),
    (ServiceDomain.PROACTIVE.value, "proactive-messaging.{zone}.fs.liveperson.com"),
    (ServiceDomain.CB_SSO.value, "{region}.bc-sso.liveperson.net"),
    (ServiceDomain.CB_MGMT.value, "{region}.bc-mgmt.liveperson.net"),
    (ServiceDomain.CB_INTG.value, "{region}.bc-intg.liveperson.net"),
    (ServiceDomain.CB_NLU.value, "{region}.bc-nlu.liveperson.net"),
)


def region_from_host(host: str) -> Optional[str]:
    """Leading dot-separated label of a host, e.g. ``va`` for ``va.msg.example.net``."""
    label = host.strip().split(".", 1)[0]
    return label or None


def region_info_for(region: str,
                    zone_map: Optional[Dict[str, str]] = None,
                    geo_map: Optional[Dict[str, str]] = None) -> RegionInfo:
    """Map a region code to its zone and geo via the fixed tables.

    A label such as ``va123`` that is not itself a known code resolves to
    the longest known code it starts with (``va``). Labels matching no code
    are kept as-is with no zone or geo.
    """
    zones = REGION_ZONE_MAP if zone_map is None else zone_map
    geos = ZONE_GEO_MAP if geo_map is None else geo_map
    if region not in zones:
        prefixes = sorted((code for code in zones if region.startswith(code)), key=len, reverse=True)
        if prefixes:
            region = prefixes[0]
    zone = zones.get(region)
    geo = geos.get(zone) if zone else None
    return RegionInfo(region=region, zone=zone, geo=geo)


def find_region(endpoints: Sequence[ServiceEndpoint],
                region_service: str = REGION_BEARING_SERVICE) -> Optional[RegionInfo]:
    """Extract ``RegionInfo`` from the region-bearing row, if the directory has one."""
    for endpoint in endpoints:
        if endpoint.service_name == region_service:
            region = region_from_host(endpoint.base_uri)
            return region_info_for(region) if region else None
    return None


def _placeholders(template: str) -> List[str]:
    return [name for _, name, _, _ in Formatter().parse(template) if name]


def derive_endpoints(tenant_id: str, region: RegionInfo,
                     templates: Sequence[Tuple[str, str]] = DERIVED_ENDPOINT_TEMPLATES) -> List[ServiceEndpoint]:
    """Synthesize the derived rows for one tenant.

    A template whose placeholder is unknown (region code missing from the
    zone or geo table) is skipped rather than rendered with a hole.
    """
    values = region.as_dict()
    derived = []
    for service_name, template in templates:
        needed = _placeholders(template)
        if any(values.get(name) is None for name in needed):
            continue
        derived.append(ServiceEndpoint(
            tenant_id=tenant_id,
            service_name=service_name,
            base_uri=template.format(**values),
        ))
    return derived
