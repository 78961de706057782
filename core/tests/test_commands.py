from io import StringIO

import pytest
from django.core.cache import cache
from django.core.management import call_command

from core.models import User, DoctorProfile, PatientProfile
from core.services.doctors import DIRECTORY_CACHE_KEY

pytestmark = pytest.mark.django_db


def test_refresh_caches_warms_doctor_directory(doctor):
    out = StringIO()
    call_command('refresh_caches', stdout=out)
    cached = cache.get(DIRECTORY_CACHE_KEY)
    assert [d['id'] for d in cached] == [doctor.id]
    assert cached[0]['licenseNumber'] == 'LIC-1'
    assert '1 doctors' in out.getvalue()


def test_ensure_demo_users_creates_and_is_idempotent(api_client):
    call_command('ensure_demo_users', stdout=StringIO())
    call_command('ensure_demo_users', '--password', 'secret123', stdout=StringIO())

    assert User.objects.count() == 2
    demo_doctor = User.objects.get(email='doctor@example.com')
    demo_patient = User.objects.get(email='patient@example.com')
    assert demo_doctor.doctor_profile.license_number == 'DEMO-0001'
    assert demo_patient.patient_profile.address == '1 Demo Street'

    r = api_client.post('/api/auth/login', {
        'email': 'patient@example.com', 'password': 'secret123', 'role': 'patient',
    }, format='json')
    assert r.status_code == 200


def test_ensure_demo_users_leaves_accounts_with_another_role(make_doctor):
    taken = make_doctor(email='patient@example.com', name='Dr Real Person')
    err = StringIO()
    call_command('ensure_demo_users', stdout=StringIO(), stderr=err)

    taken.refresh_from_db()
    assert taken.role == User.ROLE_DOCTOR
    assert taken.check_password('secret123')
    assert DoctorProfile.objects.filter(user=taken).exists()
    assert not PatientProfile.objects.filter(user=taken).exists()
    assert 'skipped: patient@example.com' in err.getvalue()
    assert User.objects.filter(email='doctor@example.com').exists()
