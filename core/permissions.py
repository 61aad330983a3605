"""Role-based permission resolution and the role priority hierarchy.

Vocabulary:
- *base role*: one of admin / teacher / counselor / student, each with a fixed
  set of default permissions and a fixed priority.
- *custom role*: an admin-defined bundle of permissions with a priority of
  0-5, attached to a role assignment. Only active custom roles count.

A user's effective permissions are the union over all of their role
assignments. Nothing is ever subtracted. A user's priority is the maximum
contribution over their assignments, never a sum.
"""

import logging
from dataclasses import dataclass, field

from django.conf import settings
from django.core.cache import cache
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

from core.exceptions import InvalidPermissionError
from core.models import (
    ADMIN,
    ALL_PERMISSIONS,
    COUNSELOR,
    MANAGE_DISCUSSIONS,
    MANAGE_MENUS,
    MANAGE_ROLES,
    MANAGE_SCHOOLS,
    MANAGE_STUDY_HALLS,
    MANAGE_USERS,
    STUDENT,
    TEACHER,
    VERIFY_ENTRIES,
    VIEW_ANALYTICS,
    CustomRole,
    RoleAssignment,
)

logger = logging.getLogger(__name__)

ROLE_PERMISSIONS = {
    ADMIN: ALL_PERMISSIONS,
    TEACHER: frozenset({MANAGE_STUDY_HALLS, VERIFY_ENTRIES, MANAGE_DISCUSSIONS}),
    COUNSELOR: frozenset({VERIFY_ENTRIES, VIEW_ANALYTICS}),
    STUDENT: frozenset(),
}

BASE_ROLE_PRIORITIES = {
    ADMIN: 100,
    TEACHER: 50,
    COUNSELOR: 50,
    STUDENT: 10,
}

ADMIN_PRIORITY = BASE_ROLE_PRIORITIES[ADMIN]
CUSTOM_PRIORITY_SCALE = 10

VERIFIER_ROLES = (TEACHER, COUNSELOR)

CACHE_KEY_PREFIX = "permissions"
REVISION_KEY = f"{CACHE_KEY_PREFIX}:revision"


def parse_permission(value):
    """Return *value* if it is a known permission, else raise ``InvalidPermissionError``."""
    if value not in ALL_PERMISSIONS:
        raise InvalidPermissionError(value)
    return value


def parse_permissions(values):
    """Validate a list of permission strings, de-duplicated in input order."""
    seen = []
    for value in values:
        parse_permission(value)
        if value not in seen:
            seen.append(value)
    return seen


def custom_role_priority(custom_role):
    """Scaled priority of a custom role, or None when it contributes nothing."""
    if custom_role is None or not custom_role.is_active:
        return None
    return (custom_role.priority or 0) * CUSTOM_PRIORITY_SCALE


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResolvedPermissions:
    """Roles and effective permissions of one user."""

    roles: tuple = ()
    permissions: frozenset = field(default_factory=frozenset)

    def has_permission(self, permission):
        return permission in self.permissions

    def has_any_permission(self, permissions):
        return any(p in self.permissions for p in permissions)

    def has_all_permissions(self, permissions):
        return all(p in self.permissions for p in permissions)

    def has_role(self, role):
        return role in self.roles

    @property
    def is_admin(self):
        return self.has_role(ADMIN)

    @property
    def is_verifier(self):
        return any(self.has_role(role) for role in VERIFIER_ROLES)

    # Feature access: the permission itself, or the admin base role.

    def can_manage_users(self):
        return self.has_permission(MANAGE_USERS) or self.is_admin

    def can_manage_schools(self):
        return self.has_permission(MANAGE_SCHOOLS) or self.is_admin

    def can_manage_menus(self):
        return self.has_permission(MANAGE_MENUS) or self.is_admin

    def can_manage_study_halls(self):
        return self.has_permission(MANAGE_STUDY_HALLS) or self.is_admin

    def can_verify_entries(self):
        return self.has_permission(VERIFY_ENTRIES) or self.is_admin

    def can_manage_discussions(self):
        return self.has_permission(MANAGE_DISCUSSIONS) or self.is_admin

    def can_view_analytics(self):
        return self.has_permission(VIEW_ANALYTICS) or self.is_admin

    def can_manage_roles(self):
        return self.has_permission(MANAGE_ROLES) or self.is_admin

    def as_dict(self):
        return {
            "roles": list(self.roles),
            "permissions": sorted(self.permissions),
            "is_admin": self.is_admin,
            "is_verifier": self.is_verifier,
        }


EMPTY = ResolvedPermissions()


def _revision():
    return cache.get_or_set(REVISION_KEY, 1, timeout=None)


def _cache_key(user_id):
    return f"{CACHE_KEY_PREFIX}:{_revision()}:user:{user_id}"


def invalidate_user(user_id):
    """Drop the cached permissions of one user."""
    cache.delete(_cache_key(user_id))
    logger.debug("Invalidated cached permissions for user %s", user_id)


def invalidate_all():
    """Invalidate every user's cached permissions (custom role definitions changed)."""
    try:
        cache.incr(REVISION_KEY)
    except ValueError:
        cache.set(REVISION_KEY, 2, timeout=None)
    logger.debug("Bumped permission cache revision")


def _compute(user_id):
    roles = []
    permissions = set()
    assignments = (
        RoleAssignment.objects
        .filter(user_id=user_id)
        .select_related("custom_role")
        .order_by("id")
    )
    for assignment in assignments:
        roles.append(assignment.role)
        permissions.update(ROLE_PERMISSIONS.get(assignment.role, ()))

        custom_role = assignment.custom_role
        if custom_role is None or not custom_role.is_active:
            continue
        for permission in custom_role.permissions or []:
            if permission in ALL_PERMISSIONS:
                permissions.add(permission)
            else:
                logger.warning(
                    "Ignoring unknown permission %r on custom role %s",
                    permission, custom_role.name,
                )
    return ResolvedPermissions(roles=tuple(roles), permissions=frozenset(permissions))


def resolve_permissions(user):
    """Return the :class:`ResolvedPermissions` of *user*.

    Anonymous or missing users resolve to no roles and no permissions.
    Results are cached per user; database errors propagate to the caller.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        return EMPTY

    key = _cache_key(user.pk)
    cached = cache.get(key)
    if cached is not None:
        return ResolvedPermissions(
            roles=tuple(cached["roles"]),
            permissions=frozenset(cached["permissions"]),
        )

    logger.debug("Permission cache miss for user %s", user.pk)
    resolved = _compute(user.pk)
    cache.set(
        key,
        {"roles": list(resolved.roles), "permissions": sorted(resolved.permissions)},
        timeout=settings.PERMISSION_CACHE_TIMEOUT,
    )
    return resolved


# ---------------------------------------------------------------------------
# Role hierarchy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RolePriority:
    """Highest priority of a user and the display metadata of the role providing it."""

    priority: int = 0
    role_name: str = "User"
    icon: str = "user"
    color: str = "#6b7280"

    def as_dict(self):
        return {
            "priority": self.priority,
            "role_name": self.role_name,
            "icon": self.icon,
            "color": self.color,
        }


DEFAULT_PRIORITY = RolePriority()


def priority_from_assignments(assignments):
    """Fold role assignments (with ``custom_role`` loaded) into a :class:`RolePriority`.

    A custom role whose scaled priority equals the current maximum takes over
    the display metadata when it has a display name.
    """
    best = DEFAULT_PRIORITY
    for assignment in assignments:
        base = BASE_ROLE_PRIORITIES.get(assignment.role, 0)
        if base > best.priority:
            is_admin = assignment.role == ADMIN
            best = RolePriority(
                priority=base,
                role_name=assignment.role,
                icon="crown" if is_admin else "shield",
                color="#eab308" if is_admin else "#6366f1",
            )

        custom = custom_role_priority(assignment.custom_role)
        if custom is None:
            continue
        custom_role = assignment.custom_role
        if custom > best.priority or (custom == best.priority and custom_role.display_name):
            best = RolePriority(
                priority=max(best.priority, custom),
                role_name=custom_role.display_name,
                icon=custom_role.icon or "shield",
                color=custom_role.color or "#6366f1",
            )
    return best


def user_priority(user):
    """Return the :class:`RolePriority` of *user* (default for anonymous users)."""
    if user is None or not getattr(user, "is_authenticated", False):
        return DEFAULT_PRIORITY
    assignments = (
        RoleAssignment.objects
        .filter(user_id=user.pk)
        .select_related("custom_role")
        .order_by("id")
    )
    return priority_from_assignments(assignments)


def can_manage_user(actor, target_priority):
    """Admins manage everyone; others only users with a strictly lower priority."""
    actor_priority = user_priority(actor).priority
    if actor_priority >= ADMIN_PRIORITY:
        return True
    return actor_priority > target_priority


def can_assign_role(actor, role_name, custom_role=None):
    """Return True if *actor* may grant *role_name* (optionally with *custom_role*).

    *custom_role* may be a ``CustomRole`` or its primary key. The target
    priority is resolved like a user's: the base priority, raised by an active
    custom role's scaled priority.
    """
    actor_priority = user_priority(actor).priority
    if actor_priority >= ADMIN_PRIORITY:
        return True

    target_priority = BASE_ROLE_PRIORITIES.get(role_name, 0)
    if custom_role is not None and not isinstance(custom_role, CustomRole):
        custom_role = CustomRole.objects.filter(pk=custom_role).first()
    custom = custom_role_priority(custom_role)
    if custom is not None:
        target_priority = max(target_priority, custom)
    return actor_priority > target_priority


def can_manage_custom_role(actor, priority, permissions=()):
    """Return True if *actor* may define a custom role with *priority* and *permissions*.

    Admins may define anything. Anyone else needs a priority strictly above
    the role's scaled priority (active or not) and must already hold every
    permission the role grants.
    """
    actor_priority = user_priority(actor).priority
    if actor_priority >= ADMIN_PRIORITY:
        return True
    if actor_priority <= (priority or 0) * CUSTOM_PRIORITY_SCALE:
        return False
    return set(permissions) <= resolve_permissions(actor).permissions


# ---------------------------------------------------------------------------
# REST framework permission classes
# ---------------------------------------------------------------------------

class HasPermission(BasePermission):
    """Allow requests from users holding *permission* (or the admin base role).

    Used directly in ``permission_classes``::

        @permission_classes([HasPermission(MANAGE_ROLES)])
    """

    message = "You do not have permission to perform this action."

    def __init__(self, permission):
        self.permission = parse_permission(permission)

    def __call__(self):
        # REST framework instantiates each entry of permission_classes.
        return self

    def has_permission(self, request, view):
        resolved = resolve_permissions(request.user)
        return resolved.has_permission(self.permission) or resolved.is_admin


class IsAdminRole(BasePermission):
    """Allow only users holding the admin base role."""

    message = "Admin access required."

    def has_permission(self, request, view):
        return resolve_permissions(request.user).is_admin


def require_permission(user, permission):
    """Raise ``PermissionDenied`` unless *user* holds *permission* or is an admin.

    For views whose methods need different permissions.
    """
    resolved = resolve_permissions(user)
    if not (resolved.has_permission(parse_permission(permission)) or resolved.is_admin):
        raise PermissionDenied()
