"""
Appointment views.

Patients book; doctors decide.  Reading, cancelling and rescheduling
are open to both participants of an appointment.  The public doctor
directory lives here as well since it is what patients book against.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from core.permissions import ACCESS_DENIED, IsDoctorRole, IsPatientRole
from core.serializers.appointments import (
    BookAppointmentSerializer,
    AppointmentListQuerySerializer,
    AppointmentStatusSerializer,
    RescheduleSerializer,
)
from core.services import appointments as svc
from core.services.doctors import cached_doctor_directory


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_directory(request):
    return Response({'doctors': cached_doctor_directory()})


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments(request):
    if request.method == 'POST':
        return _book(request)
    q = AppointmentListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    items, pagination = svc.list_appointments(request.user, status=vd.get('status'),
                                              page=vd['page'], limit=vd['limit'])
    return Response({'appointments': items, 'pagination': pagination})


def _book(request):
    # Only patients book; checked here since GET on the same path is open to doctors
    if not IsPatientRole().has_permission(request, None):
        raise PermissionDenied(ACCESS_DENIED)
    s = BookAppointmentSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    appointment = svc.book_appointment(
        request.user,
        doctor_id=vd['doctorId'],
        date=vd['date'],
        time=vd['time'],
        reason=vd['reason'],
        symptoms=vd.get('symptoms', ''),
    )
    return Response({
        'message': 'Appointment booked successfully',
        'appointment': svc.serialize_appointment(appointment),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, pk: int):
    if request.method == 'DELETE':
        appointment = svc.cancel_appointment(request.user, pk)
        return Response({
            'message': 'Appointment cancelled successfully',
            'appointment': svc.serialize_appointment(svc.get_appointment_or_404(appointment.id)),
        })
    appointment = svc.get_appointment_for(request.user, pk)
    return Response({'appointment': svc.serialize_appointment(appointment)})


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def appointment_status(request, pk: int):
    s = AppointmentStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    appointment = svc.update_status(
        request.user, pk,
        status=vd['status'],
        notes=vd.get('notes'),
        prescription=vd.get('prescription'),
        follow_up_date=vd.get('followUpDate'),
    )
    return Response({
        'message': 'Appointment status updated successfully',
        'appointment': svc.serialize_appointment(appointment),
    })


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def appointment_reschedule(request, pk: int):
    s = RescheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appointment = svc.reschedule_appointment(
        request.user, pk, new_date=s.validated_data['newDate'], new_time=s.validated_data['newTime'],
    )
    return Response({
        'message': 'Appointment rescheduled successfully',
        'appointment': svc.serialize_appointment(appointment),
    })
