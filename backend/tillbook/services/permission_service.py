# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Role-based access control.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Permission grants are not logged
"""

from flask import current_app

from ..extensions import db
from ..models import Role, RolePermission, UserRole
from ..permissions import DEFAULT_ROLE_PERMISSIONS, validate_permission_code


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def get_user_permissions(user_id: int) -> set[str]:
    """Union of permission codes across all of the user's roles."""
    rows = (
        db.session.query(RolePermission.permission_code)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .filter(UserRole.user_id == user_id)
        .all()
    )
    return {code for (code,) in rows}


def user_has_permission(user_id: int, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user_id)


def require_permission(
    user_id: int,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
) -> None:
    """Raise PermissionDeniedError (and log the denial) if the user lacks the permission."""
    if user_has_permission(user_id, permission_code):
        return

    current_app.logger.warning(
        "Permission denied: user_id=%s permission=%s resource=%s ip=%s",
        user_id,
        permission_code,
        resource,
        ip_address,
    )
    raise PermissionDeniedError(f"Permission denied: {permission_code}")


def grant_permission(role_name: str, permission_code: str) -> RolePermission:
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown permission {permission_code}")

    role = db.session.query(Role).filter_by(name=role_name).first()
    if not role:
        raise ValueError(f"Role {role_name} not found")

    existing = db.session.query(RolePermission).filter_by(
        role_id=role.id, permission_code=permission_code
    ).first()
    if existing:
        return existing

    grant = RolePermission(role_id=role.id, permission_code=permission_code)
    db.session.add(grant)
    db.session.commit()
    return grant


def assign_default_role_permissions() -> int:
    """Grant DEFAULT_ROLE_PERMISSIONS to existing roles. Returns count of new grants."""
    created = 0
    for role_name, codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(name=role_name).first()
        if not role:
            continue
        held = {
            code for (code,) in db.session.query(RolePermission.permission_code)
            .filter_by(role_id=role.id)
            .all()
        }
        for code in codes:
            if code not in held:
                db.session.add(RolePermission(role_id=role.id, permission_code=code))
                created += 1

    db.session.commit()
    return created
