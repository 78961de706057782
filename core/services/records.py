"""
Medical records, vitals and the doctor's patient directory.

Records are readable by their author and their patient, and mutable by
their author only.  Vitals always land on the patient's most recent
record; a patient without records gets a fresh, empty one.
"""
import logging
from typing import Optional

from django.db import transaction
from django.db.models import OuterRef, Q, Subquery
from django.utils import timezone
from rest_framework.exceptions import NotFound

from core.models import MedicalRecord, Appointment, User
from core.permissions import require_relationship, PARTICIPANT, AUTHOR, SUBJECT
from core.services.accounts import account_payload, account_summary
from core.services.audit import log_action
from core.services.pagination import paginate

logger = logging.getLogger(__name__)

# Single-value vitals and their units
VITAL_UNITS = {
    'weight': 'kg',
    'height': 'cm',
    'heartRate': 'bpm',
    'temperature': '°C',
}
BLOOD_PRESSURE_UNIT = 'mmHg'
VITALS_HISTORY_LIMIT = 20

# API field name -> model attribute, copied as-is
PLAIN_FIELDS = {
    'diagnosis': 'diagnosis',
    'symptoms': 'symptoms',
    'treatment': 'treatment',
    'allergies': 'allergies',
    'remedy': 'remedy',
    'formula': 'formula',
    'notes': 'notes',
}
DOCTOR_ONLY_FIELDS = ('remedy', 'formula')


def _appointment_summary(a: Optional[Appointment]) -> Optional[dict]:
    if a is None:
        return None
    return {'id': a.id, 'date': a.date.isoformat() if a.date else None, 'time': a.time, 'reason': a.reason}


def serialize_record(r: MedicalRecord, viewer: Optional[User] = None) -> dict:
    data = {
        'id': r.id,
        'patient': account_summary(r.patient),
        'doctor': account_summary(r.doctor),
        'appointment': _appointment_summary(r.appointment),
        'vitals': r.vitals or {},
        'diagnosis': r.diagnosis,
        'symptoms': r.symptoms or [],
        'prescription': r.prescription or {'medications': [], 'notes': ''},
        'treatment': r.treatment,
        'followUp': {
            'required': r.follow_up_required,
            'date': r.follow_up_date.isoformat() if r.follow_up_date else None,
            'notes': r.follow_up_notes,
        },
        'allergies': r.allergies or [],
        'medicalHistory': r.medical_history or [],
        'remedy': r.remedy,
        'formula': r.formula,
        'notes': r.notes,
        'createdAt': r.created_at.isoformat() if r.created_at else None,
        'updatedAt': r.updated_at.isoformat() if r.updated_at else None,
    }
    if viewer is not None and not viewer.is_doctor:
        for field in DOCTOR_ONLY_FIELDS:
            data.pop(field)
    return data


def _with_refs(qs):
    return qs.select_related('patient__patient_profile', 'doctor__doctor_profile', 'appointment')


def get_record_or_404(pk: int) -> MedicalRecord:
    record = _with_refs(MedicalRecord.objects.all()).filter(pk=pk).first()
    if record is None:
        raise NotFound('Medical record not found')
    return record


def get_patient_or_404(patient_id: int) -> User:
    patient = User.objects.filter(pk=patient_id, role=User.ROLE_PATIENT).select_related('patient_profile').first()
    if patient is None:
        raise NotFound('Patient not found')
    return patient


def _latest_record(patient_id: int) -> Optional[MedicalRecord]:
    return MedicalRecord.objects.filter(patient_id=patient_id).order_by('-created_at', '-id').first()


def _reading(value, unit: str, when) -> dict:
    return {'value': value, 'unit': unit, 'date': when.isoformat()}


def _blood_pressure(bp: dict, when) -> dict:
    return {'systolic': bp['systolic'], 'diastolic': bp['diastolic'],
            'unit': BLOOD_PRESSURE_UNIT, 'date': when.isoformat()}


def _vitals_document(data: dict) -> dict:
    """Stored form of a record's ``vitals``; readings without a date are stamped now."""
    now = timezone.now()
    vitals = {}
    for key, unit in VITAL_UNITS.items():
        if key in data:
            vitals[key] = _reading(data[key]['value'], unit, data[key].get('date') or now)
    if 'bloodPressure' in data:
        vitals['bloodPressure'] = _blood_pressure(data['bloodPressure'], data['bloodPressure'].get('date') or now)
    return vitals


def _apply_fields(record: MedicalRecord, data: dict) -> list[str]:
    """Copy the clinical fields present in ``data`` onto ``record``."""
    changed = []
    for key, attr in PLAIN_FIELDS.items():
        if key in data:
            value = data[key]
            setattr(record, attr, list(value) if isinstance(value, list) else value)
            changed.append(attr)
    if 'prescription' in data:
        prescription = data['prescription'] or {}
        record.prescription = {
            'medications': [dict(m) for m in prescription.get('medications', [])],
            'notes': prescription.get('notes', ''),
        }
        changed.append('prescription')
    if 'medicalHistory' in data:
        record.medical_history = [dict(entry) for entry in data['medicalHistory']]
        changed.append('medical_history')
    if 'vitals' in data:
        record.vitals = _vitals_document(data['vitals'] or {})
        changed.append('vitals')
    if 'followUp' in data:
        follow_up = data['followUp'] or {}
        record.follow_up_required = bool(follow_up.get('required', False))
        record.follow_up_date = follow_up.get('date')
        record.follow_up_notes = follow_up.get('notes', '')
        changed.extend(['follow_up_required', 'follow_up_date', 'follow_up_notes'])
    return changed


def create_record(doctor: User, data: dict) -> MedicalRecord:
    patient = get_patient_or_404(data['patientId'])
    appointment = None
    if data.get('appointmentId'):
        appointment = Appointment.objects.filter(pk=data['appointmentId']).first()
        if appointment is None:
            raise NotFound('Appointment not found')

    with transaction.atomic():
        record = MedicalRecord(patient=patient, doctor=doctor, appointment=appointment)
        _apply_fields(record, data)
        record.save()
        log_action(user=doctor, action='record_create', object_type='medical_record', object_id=record.id,
                   detail={'patientId': patient.id})

    logger.info('medical record %s created by doctor %s for patient %s', record.id, doctor.id, patient.id)
    return get_record_or_404(record.id)


def get_record_for(user: User, pk: int) -> MedicalRecord:
    record = get_record_or_404(pk)
    require_relationship(user, doctor_id=record.doctor_id, patient_id=record.patient_id, relationship=PARTICIPANT)
    return record


def _update(doctor: User, record: MedicalRecord, data: dict) -> MedicalRecord:
    require_relationship(doctor, doctor_id=record.doctor_id, relationship=AUTHOR)
    with transaction.atomic():
        changed = _apply_fields(record, data)
        record.save()
        log_action(user=doctor, action='record_update', object_type='medical_record', object_id=record.id,
                   detail={'fields': changed})
    logger.info('medical record %s updated by doctor %s', record.id, doctor.id)
    return get_record_or_404(record.id)


def update_record(doctor: User, pk: int, data: dict) -> MedicalRecord:
    return _update(doctor, get_record_or_404(pk), data)


def update_latest_patient_record(doctor: User, patient_id: int, data: dict) -> MedicalRecord:
    get_patient_or_404(patient_id)
    record = _latest_record(patient_id)
    if record is None:
        raise NotFound('Medical record not found')
    return _update(doctor, record, data)


def delete_record(doctor: User, pk: int) -> None:
    record = get_record_or_404(pk)
    require_relationship(doctor, doctor_id=record.doctor_id, relationship=AUTHOR)
    with transaction.atomic():
        log_action(user=doctor, action='record_delete', object_type='medical_record', object_id=record.id,
                   detail={'patientId': record.patient_id})
        record.delete()
    logger.info('medical record %s deleted by doctor %s', pk, doctor.id)


def list_patient_records(user: User, patient_id: int, *, page: int = 1, limit: int = 10):
    require_relationship(user, patient_id=patient_id, relationship=SUBJECT)
    qs = _with_refs(MedicalRecord.objects.filter(patient_id=patient_id)).order_by('-created_at', '-id')
    items, pagination = paginate(qs, page, limit)
    return [serialize_record(r, user) for r in items], pagination


def list_patients(doctor: User, *, search: str = '', page: int = 1, limit: int = 20):
    """Patients matching ``search``, each with their most recent record.

    The latest record id is resolved in the page query itself and the
    records are loaded with one more query, whatever the page size.
    """
    latest_id = (MedicalRecord.objects.filter(patient=OuterRef('pk'))
                 .order_by('-created_at', '-id').values('id')[:1])
    qs = (User.objects.filter(role=User.ROLE_PATIENT).select_related('patient_profile')
          .annotate(latest_record_id=Subquery(latest_id)))
    search = (search or '').strip()
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(email__icontains=search) | Q(phone__icontains=search))
    qs = qs.order_by('-date_joined', '-id')
    items, pagination = paginate(qs, page, limit)

    record_ids = [p.latest_record_id for p in items if p.latest_record_id]
    records = {r.id: r for r in _with_refs(MedicalRecord.objects.filter(id__in=record_ids))}

    data = []
    for p in items:
        row = account_payload(p)
        record = records.get(p.latest_record_id)
        row['latestMedicalRecord'] = serialize_record(record, doctor) if record else None
        data.append(row)
    return data, pagination


def update_vitals(user: User, patient_id: int, data: dict) -> MedicalRecord:
    require_relationship(user, patient_id=patient_id, relationship=SUBJECT)
    patient = get_patient_or_404(patient_id)

    with transaction.atomic():
        record = (MedicalRecord.objects.select_for_update()
                  .filter(patient=patient).order_by('-created_at', '-id').first())
        if record is None:
            record = MedicalRecord(patient=patient, doctor=user if user.is_doctor else None, vitals={})

        now = timezone.now()
        vitals = dict(record.vitals or {})
        for key, unit in VITAL_UNITS.items():
            if key in data:
                vitals[key] = _reading(data[key], unit, now)
        if 'bloodPressure' in data:
            vitals['bloodPressure'] = _blood_pressure(data['bloodPressure'], now)
        record.vitals = vitals
        record.save()
        log_action(user=user, action='vitals_update', object_type='medical_record', object_id=record.id,
                   detail={'patientId': patient.id, 'vitals': sorted(data)})

    logger.info('vitals %s recorded on record %s for patient %s', sorted(data), record.id, patient.id)
    return get_record_or_404(record.id)


def vitals_history(user: User, patient_id: int) -> list[dict]:
    require_relationship(user, patient_id=patient_id, relationship=SUBJECT)
    get_patient_or_404(patient_id)
    qs = (MedicalRecord.objects.filter(patient_id=patient_id).exclude(vitals={})
          .order_by('-created_at', '-id').only('id', 'vitals', 'created_at')[:VITALS_HISTORY_LIMIT])
    return [{
        'id': r.id,
        'vitals': r.vitals,
        'createdAt': r.created_at.isoformat() if r.created_at else None,
    } for r in qs]
