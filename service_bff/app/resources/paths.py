"""
Upstream account-config path templates.
"""

from urllib.parse import quote


def _seg(value) -> str:
    return quote(str(value), safe="")


def skills_path(tenant_id: str) -> str:
    return f"/api/account/{_seg(tenant_id)}/configuration/le-users/skills"


def skill_path(tenant_id: str, skill_id) -> str:
    return f"{skills_path(tenant_id)}/{_seg(skill_id)}"


def users_path(tenant_id: str) -> str:
    return f"/api/account/{_seg(tenant_id)}/configuration/le-users/users"


def user_path(tenant_id: str, user_id) -> str:
    return f"{users_path(tenant_id)}/{_seg(user_id)}"


def campaigns_path(tenant_id: str) -> str:
    return f"/api/account/{_seg(tenant_id)}/configuration/le-campaigns/campaigns"
