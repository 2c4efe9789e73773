"""
Directory package for the BFF.

Resolves per-tenant upstream hosts from the CSDS directory, derives the
region-keyed auxiliary hosts, and caches both per tenant.
"""

from .constants import ServiceDomain
from .models import RegionInfo, ResolvedDirectory, ServiceEndpoint
from .resolver import DomainResolver, service_key

__all__ = [
    "DomainResolver",
    "RegionInfo",
    "ResolvedDirectory",
    "ServiceDomain",
    "ServiceEndpoint",
    "service_key",
]
