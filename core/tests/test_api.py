"""
End-to-end tests for the clinic API.

These tests walk the main flow the way a front-end would: register a
doctor and a patient, book, let the doctor decide, and try to take the
same slot again.  They use Django REST Framework's APIClient within the
APITestCase base class.

To run the tests:

```
pytest -q core/tests
```
"""

from django.core.cache import cache
from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from core.models import User, Appointment, MedicalRecord


class ClinicAPITests(APITestCase):
    def setUp(self) -> None:
        """Register a doctor and a patient through the public API."""
        cache.clear()
        self.anon = APIClient()
        resp = self.anon.post('/api/auth/register', {
            'name': 'Dr Grace Hopper',
            'email': 'grace@example.com',
            'password': 'secret123',
            'phone': '555-0101',
            'role': 'doctor',
            'specialization': 'General Practice',
            'licenseNumber': 'GP-1906',
            'experience': 12,
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.doctor_id = resp.data['user']['id']
        self.doctor = self._client(resp.data['token'])

        resp = self.anon.post('/api/auth/register', {
            'name': 'Henry Ford',
            'email': 'henry@example.com',
            'password': 'secret123',
            'phone': '555-0202',
            'role': 'patient',
            'age': 52,
            'gender': 'male',
            'address': '1 Assembly Line',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        self.patient_id = resp.data['user']['id']
        self.patient = self._client(resp.data['token'])

    def _client(self, token: str) -> APIClient:
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
        return client

    def _book(self, client: APIClient, date='2024-01-01', time='10:00'):
        return client.post('/api/appointments', {
            'doctorId': self.doctor_id,
            'date': date,
            'time': time,
            'reason': 'Annual physical examination',
        }, format='json')

    def test_booking_flow_and_double_booking(self) -> None:
        resp = self._book(self.patient)
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        appt_id = resp.data['appointment']['id']

        resp = self.doctor.put(f'/api/appointments/{appt_id}/status', {'status': 'accepted'}, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['appointment']['status'], 'accepted')

        # A second patient tries the same slot
        resp = self.anon.post('/api/auth/register', {
            'name': 'Ida Lovelace',
            'email': 'ida@example.com',
            'password': 'secret123',
            'phone': '555-0303',
            'role': 'patient',
            'age': 36,
            'gender': 'female',
            'address': '12 Engine Row',
        }, format='json')
        second = self._client(resp.data['token'])
        resp = self._book(second)
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already booked', resp.data['message'])
        self.assertEqual(Appointment.objects.count(), 1)

    def test_visit_to_record_flow(self) -> None:
        appt_id = self._book(self.patient).data['appointment']['id']
        self.doctor.put(f'/api/appointments/{appt_id}/status', {'status': 'completed'}, format='json')

        resp = self.doctor.post('/api/medical-records', {
            'patientId': self.patient_id,
            'appointmentId': appt_id,
            'diagnosis': 'Healthy',
            'remedy': 'None needed',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
        record_id = resp.data['medicalRecord']['id']

        resp = self.patient.put(f'/api/medical-records/vitals/{self.patient_id}', {'heartRate': 72},
                                format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['medicalRecord']['id'], record_id)

        resp = self.patient.get(f'/api/medical-records/{record_id}')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['medicalRecord']['vitals']['heartRate']['unit'], 'bpm')
        self.assertNotIn('remedy', resp.data['medicalRecord'])
        self.assertEqual(MedicalRecord.objects.get(pk=record_id).doctor_id, self.doctor_id)

    def test_login_after_registration(self) -> None:
        resp = self.anon.post('/api/auth/login', {
            'email': 'grace@example.com', 'password': 'secret123', 'role': 'doctor',
        }, format='json')
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data['user']['role'], User.ROLE_DOCTOR)

        me = self._client(resp.data['token']).get('/api/auth/me')
        self.assertEqual(me.data['user']['licenseNumber'], 'GP-1906')
