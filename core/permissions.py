"""
Role and ownership based access control.

Role gates are DRF permission classes applied on the views.  Ownership
is decided by one predicate, :func:`has_relationship`, which every
service calls with the owner ids of the resource it is about to touch.
"""
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission

ACCESS_DENIED = 'Access denied'

# Relationship names understood by has_relationship
PARTICIPANT = 'participant'
AUTHOR = 'author'
SUBJECT = 'subject'


def _role(user):
    return getattr(user, 'role', None)


class IsDoctorRole(BasePermission):
    """Allow access only to users with the doctor role."""
    message = ACCESS_DENIED

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and _role(user) == "doctor")


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    message = ACCESS_DENIED

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and _role(user) == "patient")


def has_relationship(actor, *, doctor_id=None, patient_id=None, relationship: str = PARTICIPANT) -> bool:
    """Return True if ``actor`` stands in ``relationship`` to the resource.

    ``participant``: actor is the referenced doctor or patient.
    ``author``: actor is a doctor and is the referenced doctor.
    ``subject``: actor is the referenced patient, or any doctor.
    """
    if not (actor and getattr(actor, 'is_authenticated', False)):
        return False
    role = _role(actor)
    if relationship == PARTICIPANT:
        return actor.id in {doctor_id, patient_id} - {None}
    if relationship == AUTHOR:
        return role == 'doctor' and doctor_id is not None and actor.id == doctor_id
    if relationship == SUBJECT:
        return role == 'doctor' or (role == 'patient' and actor.id == patient_id)
    raise ValueError(f'unknown relationship: {relationship}')


def require_relationship(actor, *, doctor_id=None, patient_id=None, relationship: str = PARTICIPANT) -> None:
    """Raise ``PermissionDenied`` unless :func:`has_relationship` allows."""
    if not has_relationship(actor, doctor_id=doctor_id, patient_id=patient_id, relationship=relationship):
        raise PermissionDenied(ACCESS_DENIED)
