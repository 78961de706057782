"""
Medical record views.

Doctors author records and browse their patients.  Patients read their
own records and may submit their own vitals.  Ownership checks live in
``core.services.records``; these views only gate on role where a whole
endpoint belongs to one role.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.permissions import ACCESS_DENIED, IsDoctorRole
from core.serializers.records import (
    MedicalRecordCreateSerializer,
    MedicalRecordFieldsSerializer,
    PageQuerySerializer,
    PatientSearchQuerySerializer,
    VitalsUpdateSerializer,
)
from core.services import records as svc


def _require_doctor(request):
    if not IsDoctorRole().has_permission(request, None):
        raise PermissionDenied(ACCESS_DENIED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def create_record(request):
    s = MedicalRecordCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record = svc.create_record(request.user, s.validated_data)
    return Response({
        'message': 'Medical record created successfully',
        'medicalRecord': svc.serialize_record(record, request.user),
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def list_patients(request):
    q = PatientSearchQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    patients, pagination = svc.list_patients(request.user, search=vd['search'], page=vd['page'], limit=vd['limit'])
    return Response({'patients': patients, 'pagination': pagination})


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsAuthenticated])
def record_detail(request, pk: int):
    if request.method == 'GET':
        record = svc.get_record_for(request.user, pk)
        return Response({'medicalRecord': svc.serialize_record(record, request.user)})

    _require_doctor(request)
    if request.method == 'DELETE':
        svc.delete_record(request.user, pk)
        return Response({'message': 'Medical record deleted successfully'})

    s = MedicalRecordFieldsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record = svc.update_record(request.user, pk, s.validated_data)
    return Response({
        'message': 'Medical record updated successfully',
        'medicalRecord': svc.serialize_record(record, request.user),
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def patient_records(request, patient_id: int):
    if request.method == 'GET':
        q = PageQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        records, pagination = svc.list_patient_records(
            request.user, patient_id, page=q.validated_data['page'], limit=q.validated_data['limit'],
        )
        return Response({'medicalRecords': records, 'pagination': pagination})

    _require_doctor(request)
    s = MedicalRecordFieldsSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record = svc.update_latest_patient_record(request.user, patient_id, s.validated_data)
    return Response({
        'message': 'Medical record updated successfully',
        'medicalRecord': svc.serialize_record(record, request.user),
    })


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def patient_vitals(request, patient_id: int):
    if request.method == 'GET':
        return Response({'vitals': svc.vitals_history(request.user, patient_id)})

    s = VitalsUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    record = svc.update_vitals(request.user, patient_id, s.validated_data)
    return Response({
        'message': 'Patient vitals updated successfully',
        'medicalRecord': svc.serialize_record(record, request.user),
    })
