"""
Resource services for the BFF.

Each service declares the upstream service name and API version it needs
and otherwise only maps paths and payloads onto the request gateway verbs.
"""

from .campaigns import CampaignsService
from .skills import SkillsService
from .users import UsersService

__all__ = ["CampaignsService", "SkillsService", "UsersService"]
