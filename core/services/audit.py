"""
Audit trail for account, appointment and medical record changes.

Rows are written inside the caller's transaction, so a rolled back
change leaves no audit row behind.
"""
from typing import Optional, Any, Dict

from core.models import AuditEvent, User


def client_ip(request) -> Optional[str]:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_action(*, user: Optional[User], action: str, object_type: Optional[str] = None,
               object_id: Optional[int] = None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    """Record ``action`` by ``user``; anonymous callers are stored as no user."""
    return AuditEvent.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        action=action,
        object_type=object_type,
        object_id=object_id,
        detail=detail or {},
    )
