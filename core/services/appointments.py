"""
Appointment booking and lifecycle.

A slot is the (doctor, date, time) triple.  At most one appointment per
slot may be active (pending or accepted).  Booking and rescheduling
check the slot and insert inside one transaction that first locks the
doctor's row, and the table carries a partial unique constraint on
active slots, so two concurrent requests cannot both take a slot.
"""
import logging
from typing import Optional

from django.db import IntegrityError, transaction
from rest_framework.exceptions import NotFound, ValidationError

from core.exceptions import SlotUnavailable
from core.models import Appointment, User
from core.permissions import require_relationship, PARTICIPANT, AUTHOR
from core.services.accounts import account_summary
from core.services.audit import log_action
from core.services.pagination import paginate

logger = logging.getLogger(__name__)

# Status changes a doctor may apply; keeping the current status is always allowed
ALLOWED_TRANSITIONS = {
    Appointment.STATUS_PENDING: {
        Appointment.STATUS_ACCEPTED,
        Appointment.STATUS_REJECTED,
        Appointment.STATUS_CANCELLED,
        Appointment.STATUS_COMPLETED,
    },
    Appointment.STATUS_ACCEPTED: {Appointment.STATUS_COMPLETED, Appointment.STATUS_CANCELLED},
    Appointment.STATUS_REJECTED: set(),
    Appointment.STATUS_COMPLETED: set(),
    Appointment.STATUS_CANCELLED: set(),
}


def _can_transition(current: str, new: str) -> bool:
    return new == current or new in ALLOWED_TRANSITIONS.get(current, set())


def serialize_appointment(a: Appointment) -> dict:
    return {
        'id': a.id,
        'patient': account_summary(a.patient),
        'doctor': account_summary(a.doctor),
        'date': a.date.isoformat() if a.date else None,
        'time': a.time,
        'reason': a.reason,
        'symptoms': a.symptoms,
        'status': a.status,
        'notes': a.notes,
        'prescription': a.prescription,
        'followUpDate': a.follow_up_date.isoformat() if a.follow_up_date else None,
        'rescheduledFrom': a.rescheduled_from_id,
        'rescheduledTo': a.rescheduled_to_id,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
        'updatedAt': a.updated_at.isoformat() if a.updated_at else None,
    }


def _with_people(qs):
    return qs.select_related('doctor__doctor_profile', 'patient__patient_profile')


def get_appointment_or_404(pk: int, *, for_update: bool = False) -> Appointment:
    if for_update:
        # No joins here: row locks cannot cover the nullable side of an outer join
        qs = Appointment.objects.select_for_update()
    else:
        qs = _with_people(Appointment.objects.all())
    appointment = qs.filter(pk=pk).first()
    if appointment is None:
        raise NotFound('Appointment not found')
    return appointment


def slot_taken(doctor_id: int, date, time: str, *, exclude_id: Optional[int] = None) -> bool:
    qs = Appointment.objects.filter(
        doctor_id=doctor_id, date=date, time=time, status__in=Appointment.ACTIVE_STATUSES,
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    return qs.exists()


def _lock_doctor(doctor_id: int) -> None:
    # Serialises slot checks per doctor on backends with row locks
    User.objects.select_for_update().only('id').get(pk=doctor_id)


def _insert_in_slot(**fields) -> Appointment:
    try:
        with transaction.atomic():
            return Appointment.objects.create(**fields)
    except IntegrityError:
        raise SlotUnavailable()


def book_appointment(patient: User, *, doctor_id: int, date, time: str, reason: str,
                     symptoms: str = '') -> Appointment:
    doctor = User.objects.filter(pk=doctor_id, role=User.ROLE_DOCTOR).first()
    if doctor is None:
        raise NotFound('Doctor not found')

    with transaction.atomic():
        _lock_doctor(doctor.id)
        if slot_taken(doctor.id, date, time):
            raise SlotUnavailable()
        appointment = _insert_in_slot(
            patient=patient, doctor=doctor, date=date, time=time, reason=reason, symptoms=symptoms or '',
        )
        log_action(user=patient, action='appointment_book', object_type='appointment', object_id=appointment.id,
                   detail={'doctorId': doctor.id, 'date': str(date), 'time': time})

    logger.info('appointment %s booked: doctor=%s date=%s time=%s', appointment.id, doctor.id, date, time)
    return get_appointment_or_404(appointment.id)


def list_appointments(user: User, *, status: Optional[str] = None, page: int = 1, limit: int = 10):
    qs = Appointment.objects.all()
    if user.is_doctor:
        qs = qs.filter(doctor=user)
    else:
        qs = qs.filter(patient=user)
    if status:
        qs = qs.filter(status=status)
    qs = _with_people(qs).order_by('-date', '-time', '-id')
    items, pagination = paginate(qs, page, limit)
    return [serialize_appointment(a) for a in items], pagination


def get_appointment_for(user: User, pk: int) -> Appointment:
    appointment = get_appointment_or_404(pk)
    require_relationship(user, doctor_id=appointment.doctor_id, patient_id=appointment.patient_id,
                         relationship=PARTICIPANT)
    return appointment


def update_status(doctor: User, pk: int, *, status: str, notes: Optional[str] = None,
                  prescription: Optional[str] = None, follow_up_date=None) -> Appointment:
    with transaction.atomic():
        appointment = get_appointment_or_404(pk, for_update=True)
        require_relationship(doctor, doctor_id=appointment.doctor_id, relationship=AUTHOR)
        previous = appointment.status
        if not _can_transition(previous, status):
            raise ValidationError(f'Cannot change status from {previous} to {status}')

        appointment.status = status
        if notes:
            appointment.notes = notes
        if prescription:
            appointment.prescription = prescription
        if follow_up_date:
            appointment.follow_up_date = follow_up_date
        appointment.save()
        log_action(user=doctor, action='appointment_status', object_type='appointment', object_id=appointment.id,
                   detail={'from': previous, 'to': status})

    logger.info('appointment %s status %s -> %s', appointment.id, previous, status)
    return get_appointment_or_404(appointment.id)


def reschedule_appointment(user: User, pk: int, *, new_date, new_time: str) -> Appointment:
    """Cancel ``pk`` and book its copy at (new_date, new_time).

    Both records stay; they point at each other through
    ``rescheduled_to`` / ``rescheduled_from``.
    """
    with transaction.atomic():
        original = get_appointment_or_404(pk, for_update=True)
        require_relationship(user, doctor_id=original.doctor_id, patient_id=original.patient_id,
                             relationship=PARTICIPANT)
        if not original.is_active:
            raise ValidationError('Only pending or accepted appointments can be rescheduled')

        _lock_doctor(original.doctor_id)
        if slot_taken(original.doctor_id, new_date, new_time, exclude_id=original.id):
            raise SlotUnavailable()

        # Free the original slot first so a same-slot reschedule passes the constraint
        original.status = Appointment.STATUS_CANCELLED
        original.save(update_fields=['status', 'updated_at'])
        replacement = _insert_in_slot(
            patient_id=original.patient_id,
            doctor_id=original.doctor_id,
            date=new_date,
            time=new_time,
            reason=original.reason,
            symptoms=original.symptoms,
            status=Appointment.STATUS_PENDING,
            rescheduled_from=original,
        )
        original.rescheduled_to = replacement
        original.save(update_fields=['rescheduled_to', 'updated_at'])
        log_action(user=user, action='appointment_reschedule', object_type='appointment', object_id=original.id,
                   detail={'newId': replacement.id, 'date': str(new_date), 'time': new_time})

    logger.info('appointment %s rescheduled to %s', original.id, replacement.id)
    return get_appointment_or_404(replacement.id)


def cancel_appointment(user: User, pk: int) -> Appointment:
    with transaction.atomic():
        appointment = get_appointment_or_404(pk, for_update=True)
        require_relationship(user, doctor_id=appointment.doctor_id, patient_id=appointment.patient_id,
                             relationship=PARTICIPANT)
        if not appointment.is_active:
            raise ValidationError('Appointment cannot be cancelled in its current status')
        appointment.status = Appointment.STATUS_CANCELLED
        appointment.save(update_fields=['status', 'updated_at'])
        log_action(user=user, action='appointment_cancel', object_type='appointment', object_id=appointment.id)

    logger.info('appointment %s cancelled by %s', appointment.id, user.id)
    return appointment
