import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from core.authentication import issue_token
from core.models import User, DoctorProfile, PatientProfile

PASSWORD = 'secret123'


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and the doctor directory live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


def authed(user) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {issue_token(user)}')
    return client


@pytest.fixture
def make_doctor(db):
    def _make(email='doctor@example.com', name='Dr Alice Smith', specialization='Cardiology',
              license_number='LIC-1', experience=10):
        user = User.objects.create_user(email=email, password=PASSWORD, name=name, phone='555-1000',
                                        role=User.ROLE_DOCTOR)
        DoctorProfile.objects.create(user=user, specialization=specialization,
                                     license_number=license_number, experience=experience)
        return user
    return _make


@pytest.fixture
def make_patient(db):
    def _make(email='patient@example.com', name='Bob Patient', phone='555-2000', age=30, gender='male'):
        user = User.objects.create_user(email=email, password=PASSWORD, name=name, phone=phone,
                                        role=User.ROLE_PATIENT)
        PatientProfile.objects.create(user=user, age=age, gender=gender, address='1 Main Street')
        return user
    return _make


@pytest.fixture
def doctor(make_doctor):
    return make_doctor()


@pytest.fixture
def patient(make_patient):
    return make_patient()


@pytest.fixture
def doctor_client(doctor):
    return authed(doctor)


@pytest.fixture
def patient_client(patient):
    return authed(patient)


@pytest.fixture
def client_for():
    return authed
