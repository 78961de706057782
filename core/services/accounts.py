import logging
from typing import Optional

from django.contrib.auth import authenticate
from django.db import IntegrityError, transaction
from rest_framework.exceptions import AuthenticationFailed, ValidationError

from core.models import User, DoctorProfile, PatientProfile
from core.services.audit import client_ip, log_action
from core.services.doctors import invalidate_doctor_directory

logger = logging.getLogger(__name__)

# API field name -> profile attribute
DOCTOR_FIELD_MAP = {
    'specialization': 'specialization',
    'licenseNumber': 'license_number',
    'experience': 'experience',
}
PATIENT_FIELD_MAP = {
    'age': 'age',
    'gender': 'gender',
    'address': 'address',
    'emergencyContact': 'emergency_contact',
}


def account_payload(user: User) -> dict:
    """Public view of an account with the fields of its role."""
    data = {
        'id': user.id,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'phone': user.phone,
        'createdAt': user.date_joined.isoformat() if user.date_joined else None,
    }
    if user.is_doctor:
        profile = getattr(user, 'doctor_profile', None)
        data.update({
            'specialization': profile.specialization if profile else None,
            'licenseNumber': profile.license_number if profile else None,
            'experience': profile.experience if profile else None,
        })
    elif user.is_patient:
        profile = getattr(user, 'patient_profile', None)
        data.update({
            'age': profile.age if profile else None,
            'gender': profile.gender if profile else None,
            'address': profile.address if profile else None,
            'emergencyContact': (profile.emergency_contact or None) if profile else None,
        })
    return data


def account_summary(user: Optional[User]) -> Optional[dict]:
    """Short reference to an account, embedded in appointments and records."""
    if user is None:
        return None
    data = {'id': user.id, 'name': user.name}
    if user.is_doctor:
        profile = getattr(user, 'doctor_profile', None)
        data['specialization'] = profile.specialization if profile else None
    elif user.is_patient:
        profile = getattr(user, 'patient_profile', None)
        data['age'] = profile.age if profile else None
        data['gender'] = profile.gender if profile else None
    return data


def _profile_values(field_map: dict, data: dict) -> dict:
    return {attr: data[key] for key, attr in field_map.items() if key in data}


@transaction.atomic
def register_account(data: dict) -> User:
    """Create an account and the profile of its role in one transaction."""
    email = data['email']
    if User.objects.filter(email=email).exists():
        raise ValidationError('User already exists with this email')

    role = data['role']
    try:
        # a concurrent registration can win between the check and the insert
        with transaction.atomic():
            user = User.objects.create_user(
                email=email, password=data['password'], name=data['name'], phone=data['phone'], role=role,
            )
    except IntegrityError:
        logger.warning('duplicate registration for %s', email)
        raise ValidationError('User already exists with this email')
    if role == User.ROLE_DOCTOR:
        DoctorProfile.objects.create(user=user, **_profile_values(DOCTOR_FIELD_MAP, data))
        transaction.on_commit(invalidate_doctor_directory)
    else:
        values = _profile_values(PATIENT_FIELD_MAP, data)
        values['emergency_contact'] = dict(values.get('emergency_contact') or {})
        PatientProfile.objects.create(user=user, **values)

    log_action(user=user, action='register', object_type='user', object_id=user.id, detail={'role': role})
    logger.info('registered %s account %s', role, user.id)
    return user


def login_account(request, *, email: str, password: str, role: str) -> User:
    user = authenticate(request, username=email, password=password)
    if user is None or user.role != role:
        logger.warning('failed login for %s as %s', email, role)
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'email': email, 'ip': client_ip(request)})
        raise AuthenticationFailed('Invalid credentials')
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': client_ip(request)})
    return user


@transaction.atomic
def update_profile(user: User, data: dict) -> User:
    """Apply a partial profile update. The role never changes here."""
    fields = [f for f in ('name', 'phone') if f in data]
    for f in fields:
        setattr(user, f, data[f])
    if fields:
        user.save(update_fields=fields)

    if user.is_doctor:
        values = _profile_values(DOCTOR_FIELD_MAP, data)
        profile = getattr(user, 'doctor_profile', None)
    else:
        values = _profile_values(PATIENT_FIELD_MAP, data)
        profile = getattr(user, 'patient_profile', None)
    if values:
        # createsuperuser accounts carry no profile
        if profile is None:
            raise ValidationError('Profile not found')
        for attr, value in values.items():
            setattr(profile, attr, value)
        profile.save(update_fields=list(values))

    if user.is_doctor and (fields or values):
        transaction.on_commit(invalidate_doctor_directory)
    log_action(user=user, action='profile_update', object_type='user', object_id=user.id,
               detail={'fields': sorted(fields + list(values))})
    return user
