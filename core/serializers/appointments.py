import bleach
from rest_framework import serializers

from core.models import Appointment

STATUS_CHOICES = [value for value, _ in Appointment.STATUS_CHOICES]


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class BookAppointmentSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Valid doctor ID is required'})
    date = serializers.DateField(error_messages={'invalid': 'Valid date is required'})
    time = serializers.CharField(max_length=20, error_messages={'blank': 'Time is required'})
    reason = serializers.CharField()
    symptoms = serializers.CharField(required=False, allow_blank=True)

    def validate_time(self, v):
        v = v.strip()
        if not v:
            raise serializers.ValidationError('Time is required')
        return v

    def validate_reason(self, v):
        v = _clean(v)
        if len(v) < 10:
            raise serializers.ValidationError('Reason must be at least 10 characters long')
        return v

    def validate_symptoms(self, v):
        return _clean(v)


class AppointmentListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_CHOICES, required=False)
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=10)


class AppointmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_CHOICES,
                                     error_messages={'invalid_choice': 'Valid status is required'})
    notes = serializers.CharField(required=False, allow_blank=True)
    prescription = serializers.CharField(required=False, allow_blank=True)
    followUpDate = serializers.DateField(required=False, allow_null=True,
                                         error_messages={'invalid': 'Valid follow-up date is required'})

    def validate_notes(self, v):
        return _clean(v)

    def validate_prescription(self, v):
        return _clean(v)


class RescheduleSerializer(serializers.Serializer):
    newDate = serializers.DateField(error_messages={'invalid': 'Valid new date is required'})
    newTime = serializers.CharField(max_length=20, error_messages={'blank': 'New time is required'})

    def validate_newTime(self, v):
        v = v.strip()
        if not v:
            raise serializers.ValidationError('New time is required')
        return v
