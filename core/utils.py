import logging

from core.models import STUDENT, AllowedEmailDomain, RoleAssignment, RoleAuditLog

logger = logging.getLogger(__name__)

EDUCATIONAL_EMAIL_MARKERS = (".edu", ".k12.", ".school", ".ac.", "teachers.", "faculty.")


def email_domain(email):
    """Return the lower-cased domain part of *email* ("" when there is none)."""
    if not email or "@" not in email:
        return ""
    return email.rsplit("@", 1)[1].strip().lower()


def is_educational_email(email):
    """Heuristic: does *email* look like a school or university address?"""
    domain = email_domain(email)
    return bool(domain) and any(marker in domain for marker in EDUCATIONAL_EMAIL_MARKERS)


def assign_signup_role(user):
    """Grant a newly registered user their initial base role.

    Resolution order:
    1. An ``AllowedEmailDomain`` matching the user's email domain: its role,
       scoped to its school, with the domain recorded on the assignment.
       The user's profile school is filled from the domain when unset.
    2. Otherwise the ``student`` base role.

    Returns the created ``RoleAssignment``.
    """
    domain = email_domain(user.email)
    rule = (
        AllowedEmailDomain.objects
        .select_related("school")
        .filter(domain=domain)
        .first()
        if domain else None
    )
    if rule is None:
        return RoleAssignment.objects.create(user=user, role=STUDENT)

    if user.school_id is None and rule.school_id is not None:
        user.school = rule.school
        user.save(update_fields=["school"])
    logger.info("Auto-assigned %s to user %s via @%s", rule.auto_assign_role, user.pk, domain)
    return RoleAssignment.objects.create(
        user=user,
        role=rule.auto_assign_role,
        school=rule.school,
        email_domain=domain,
    )


def record_audit(action_type, performed_by, target_user=None, custom_role_id=None, **details):
    """Append an entry to the role audit log."""
    return RoleAuditLog.objects.create(
        action_type=action_type,
        performed_by=performed_by,
        target_user=target_user,
        custom_role_id=custom_role_id,
        details=details,
    )
