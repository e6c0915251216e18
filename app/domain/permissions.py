from __future__ import annotations

from typing import Any

from app.domain.models import AccountRole, OrgNode

ROLE_USER = AccountRole.USER.value
ROLE_ADMIN = AccountRole.ADMIN.value


def claims_role(claims: dict[str, Any]) -> str:
    role = claims.get("role")
    return role if isinstance(role, str) else ROLE_USER


def has_role(claims: dict[str, Any], *roles: str) -> bool:
    return claims_role(claims) in roles


def is_admin(claims: dict[str, Any]) -> bool:
    return has_role(claims, ROLE_ADMIN)


def can_manage_node(claims: dict[str, Any], node: OrgNode) -> bool:
    user_id = claims.get("sub")
    if not user_id:
        return False
    if is_admin(claims):
        return True
    return node.created_by_id == user_id or node.user_id == user_id or node.linked_user_id == user_id
