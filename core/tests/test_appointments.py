import datetime

import pytest
from django.db import IntegrityError, transaction

from core.models import Appointment

pytestmark = pytest.mark.django_db

REASON = 'Recurring chest pain after exercise'


def book(client, doctor, date='2024-01-01', time='10:00', reason=REASON, **extra):
    return client.post('/api/appointments', {'doctorId': doctor.id, 'date': date, 'time': time,
                                             'reason': reason, **extra}, format='json')


def test_book_creates_pending_appointment(patient_client, doctor, patient):
    r = book(patient_client, doctor, symptoms='shortness of breath')
    assert r.status_code == 201
    assert r.data['message'] == 'Appointment booked successfully'
    appt = r.data['appointment']
    assert appt['status'] == 'pending'
    assert appt['doctor']['id'] == doctor.id
    assert appt['doctor']['specialization'] == 'Cardiology'
    assert appt['patient']['id'] == patient.id
    assert appt['date'] == '2024-01-01'
    assert appt['time'] == '10:00'
    assert appt['symptoms'] == 'shortness of breath'


def test_book_validation(patient_client, doctor):
    r = book(patient_client, doctor, reason='too short')
    assert r.status_code == 400
    assert r.data['errors'][0] == {'field': 'reason', 'message': 'Reason must be at least 10 characters long'}

    r = book(patient_client, doctor, date='not-a-date')
    assert r.status_code == 400
    assert r.data['errors'][0]['field'] == 'date'


def test_book_unknown_doctor(patient_client, patient):
    r = patient_client.post('/api/appointments', {'doctorId': 9999, 'date': '2024-01-01', 'time': '10:00',
                                                  'reason': REASON}, format='json')
    assert r.status_code == 404
    assert r.data == {'message': 'Doctor not found'}

    # a patient id is not a doctor either
    r = book(patient_client, patient)
    assert r.status_code == 404


def test_only_patients_book(doctor_client, doctor):
    r = book(doctor_client, doctor)
    assert r.status_code == 403
    assert r.data == {'message': 'Access denied'}


def test_second_booking_for_active_slot_is_rejected(patient_client, doctor, make_patient, client_for):
    assert book(patient_client, doctor).status_code == 201
    other = client_for(make_patient(email='other@example.com'))
    r = book(other, doctor)
    assert r.status_code == 400
    assert r.data == {'message': 'This time slot is already booked'}
    assert Appointment.objects.count() == 1

    # a different time or a different doctor is fine
    assert book(other, doctor, time='10:30').status_code == 201


@pytest.mark.parametrize('final_status', ['rejected', 'cancelled', 'completed'])
def test_slot_is_freed_when_appointment_leaves_active_states(patient_client, doctor, doctor_client, final_status):
    appt_id = book(patient_client, doctor).data['appointment']['id']
    r = doctor_client.put(f'/api/appointments/{appt_id}/status', {'status': final_status}, format='json')
    assert r.status_code == 200
    assert book(patient_client, doctor).status_code == 201


def test_active_slot_is_unique_in_the_database(doctor, patient):
    Appointment.objects.create(patient=patient, doctor=doctor, date=datetime.date(2024, 1, 1), time='10:00',
                               reason=REASON)
    Appointment.objects.create(patient=patient, doctor=doctor, date=datetime.date(2024, 1, 1), time='10:00',
                               reason=REASON, status=Appointment.STATUS_CANCELLED)
    with pytest.raises(IntegrityError), transaction.atomic():
        Appointment.objects.create(patient=patient, doctor=doctor, date=datetime.date(2024, 1, 1), time='10:00',
                                   reason=REASON, status=Appointment.STATUS_ACCEPTED)


def test_list_is_scoped_to_caller(patient_client, doctor, make_doctor, make_patient, client_for):
    book(patient_client, doctor, time='09:00')
    book(patient_client, doctor, time='11:00')
    stranger = client_for(make_patient(email='stranger@example.com'))
    other_doctor = client_for(make_doctor(email='doc2@example.com', license_number='LIC-2'))

    r = patient_client.get('/api/appointments')
    assert r.status_code == 200
    assert [a['time'] for a in r.data['appointments']] == ['11:00', '09:00']
    assert r.data['pagination'] == {'current': 1, 'pages': 1, 'total': 2}

    assert client_for(doctor).get('/api/appointments').data['pagination']['total'] == 2
    assert stranger.get('/api/appointments').data['appointments'] == []
    assert other_doctor.get('/api/appointments').data['appointments'] == []


def test_list_filters_and_paginates(patient_client, doctor, doctor_client):
    ids = [book(patient_client, doctor, time=t).data['appointment']['id'] for t in ('09:00', '10:00', '11:00')]
    doctor_client.put(f'/api/appointments/{ids[0]}/status', {'status': 'accepted'}, format='json')

    r = doctor_client.get('/api/appointments', {'status': 'accepted'})
    assert [a['id'] for a in r.data['appointments']] == [ids[0]]

    r = doctor_client.get('/api/appointments', {'limit': 2, 'page': 2})
    assert r.data['pagination'] == {'current': 2, 'pages': 2, 'total': 3}
    assert len(r.data['appointments']) == 1

    assert doctor_client.get('/api/appointments', {'status': 'bogus'}).status_code == 400


def test_detail_visible_to_participants_only(patient_client, doctor, make_patient, make_doctor, client_for):
    appt_id = book(patient_client, doctor).data['appointment']['id']
    assert patient_client.get(f'/api/appointments/{appt_id}').status_code == 200
    assert client_for(doctor).get(f'/api/appointments/{appt_id}').status_code == 200

    stranger = client_for(make_patient(email='stranger@example.com'))
    r = stranger.get(f'/api/appointments/{appt_id}')
    assert r.status_code == 403
    assert r.data == {'message': 'Access denied'}
    other_doctor = client_for(make_doctor(email='doc2@example.com', license_number='LIC-2'))
    assert other_doctor.get(f'/api/appointments/{appt_id}').status_code == 403

    assert patient_client.get('/api/appointments/9999').status_code == 404


def test_status_update_by_assigned_doctor(patient_client, doctor, doctor_client):
    appt_id = book(patient_client, doctor).data['appointment']['id']
    r = doctor_client.put(f'/api/appointments/{appt_id}/status', {
        'status': 'accepted', 'notes': 'Bring previous ECG', 'followUpDate': '2024-02-01',
    }, format='json')
    assert r.status_code == 200
    assert r.data['message'] == 'Appointment status updated successfully'
    appt = r.data['appointment']
    assert appt['status'] == 'accepted'
    assert appt['notes'] == 'Bring previous ECG'
    assert appt['followUpDate'] == '2024-02-01'


def test_status_update_denied_for_patient_and_other_doctor(patient_client, doctor, make_doctor, client_for):
    appt_id = book(patient_client, doctor).data['appointment']['id']
    assert patient_client.put(f'/api/appointments/{appt_id}/status', {'status': 'accepted'},
                              format='json').status_code == 403
    other_doctor = client_for(make_doctor(email='doc2@example.com', license_number='LIC-2'))
    assert other_doctor.put(f'/api/appointments/{appt_id}/status', {'status': 'accepted'},
                            format='json').status_code == 403
    assert Appointment.objects.get(pk=appt_id).status == 'pending'


def test_status_transitions(patient_client, doctor, doctor_client):
    appt_id = book(patient_client, doctor).data['appointment']['id']
    url = f'/api/appointments/{appt_id}/status'
    assert doctor_client.put(url, {'status': 'accepted'}, format='json').status_code == 200
    # same status again only edits the notes
    r = doctor_client.put(url, {'status': 'accepted', 'notes': 'updated'}, format='json')
    assert r.status_code == 200
    assert r.data['appointment']['notes'] == 'updated'
    assert doctor_client.put(url, {'status': 'rejected'}, format='json').status_code == 400
    assert doctor_client.put(url, {'status': 'completed'}, format='json').status_code == 200
    r = doctor_client.put(url, {'status': 'pending'}, format='json')
    assert r.status_code == 400
    assert r.data == {'message': 'Cannot change status from completed to pending'}


def test_reschedule_links_both_appointments(patient_client, doctor):
    original_id = book(patient_client, doctor).data['appointment']['id']
    r = patient_client.put(f'/api/appointments/{original_id}/reschedule',
                           {'newDate': '2024-01-02', 'newTime': '14:00'}, format='json')
    assert r.status_code == 200
    assert r.data['message'] == 'Appointment rescheduled successfully'
    new = r.data['appointment']
    assert new['id'] != original_id
    assert new['status'] == 'pending'
    assert new['rescheduledFrom'] == original_id
    assert new['date'] == '2024-01-02'
    assert new['time'] == '14:00'
    assert new['reason'] == REASON

    original = patient_client.get(f'/api/appointments/{original_id}').data['appointment']
    assert original['status'] == 'cancelled'
    assert original['rescheduledTo'] == new['id']


def test_reschedule_by_doctor_and_to_same_slot(patient_client, doctor, doctor_client):
    appt_id = book(patient_client, doctor).data['appointment']['id']
    r = doctor_client.put(f'/api/appointments/{appt_id}/reschedule',
                          {'newDate': '2024-01-01', 'newTime': '10:00'}, format='json')
    assert r.status_code == 200
    assert Appointment.objects.filter(status__in=Appointment.ACTIVE_STATUSES).count() == 1


def test_reschedule_into_booked_slot_fails(patient_client, doctor):
    first = book(patient_client, doctor, time='09:00').data['appointment']['id']
    book(patient_client, doctor, time='10:00')
    r = patient_client.put(f'/api/appointments/{first}/reschedule',
                           {'newDate': '2024-01-01', 'newTime': '10:00'}, format='json')
    assert r.status_code == 400
    assert r.data == {'message': 'This time slot is already booked'}
    assert Appointment.objects.get(pk=first).status == 'pending'


def test_reschedule_requires_active_appointment_and_participant(patient_client, doctor, make_patient, client_for):
    appt_id = book(patient_client, doctor).data['appointment']['id']
    stranger = client_for(make_patient(email='stranger@example.com'))
    body = {'newDate': '2024-01-05', 'newTime': '10:00'}
    assert stranger.put(f'/api/appointments/{appt_id}/reschedule', body, format='json').status_code == 403

    patient_client.delete(f'/api/appointments/{appt_id}')
    assert patient_client.put(f'/api/appointments/{appt_id}/reschedule', body, format='json').status_code == 400


def test_delete_cancels(patient_client, doctor):
    appt_id = book(patient_client, doctor).data['appointment']['id']
    r = patient_client.delete(f'/api/appointments/{appt_id}')
    assert r.status_code == 200
    assert r.data['message'] == 'Appointment cancelled successfully'
    assert r.data['appointment']['status'] == 'cancelled'
    assert Appointment.objects.filter(pk=appt_id).exists()

    assert patient_client.delete(f'/api/appointments/{appt_id}').status_code == 400
