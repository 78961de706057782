"""
URL mappings for the clinic API.

Every API route lives under ``/api/`` without a trailing slash.  The
operational routes (``/healthz`` and ``/metrics``) sit at the root.
"""
from django.urls import path, include

from .views import health
from .views.auth import register_view, login_view, me_view, profile_view
from .views.appointments import (
    doctor_directory,
    appointments,
    appointment_detail,
    appointment_status,
    appointment_reschedule,
)
from .views.records import (
    create_record,
    list_patients,
    record_detail,
    patient_records,
    patient_vitals,
)

urlpatterns = [
    # django_prometheus.urls already carries the "metrics" segment
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),

    # Accounts
    path('api/auth/register', register_view, name='auth-register'),
    path('api/auth/login', login_view, name='auth-login'),
    path('api/auth/me', me_view, name='auth-me'),
    path('api/auth/profile', profile_view, name='auth-profile'),

    # Appointments
    path('api/appointments/doctors', doctor_directory, name='appointment-doctors'),
    path('api/appointments', appointments, name='appointments'),
    path('api/appointments/<int:pk>', appointment_detail, name='appointment-detail'),
    path('api/appointments/<int:pk>/status', appointment_status, name='appointment-status'),
    path('api/appointments/<int:pk>/reschedule', appointment_reschedule, name='appointment-reschedule'),

    # Medical records
    path('api/medical-records', create_record, name='record-create'),
    path('api/medical-records/patients', list_patients, name='record-patients'),
    path('api/medical-records/<int:pk>', record_detail, name='record-detail'),
    path('api/medical-records/patient/<int:patient_id>', patient_records, name='record-patient'),
    path('api/medical-records/vitals/<int:patient_id>', patient_vitals, name='record-vitals'),
]
