import bleach
from rest_framework import serializers

from core.models import MedicalRecord


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class MedicationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    dosage = serializers.CharField(max_length=255, required=False, allow_blank=True)
    frequency = serializers.CharField(max_length=255, required=False, allow_blank=True)
    duration = serializers.CharField(max_length=255, required=False, allow_blank=True)
    instructions = serializers.CharField(required=False, allow_blank=True)


class PrescriptionSerializer(serializers.Serializer):
    medications = MedicationSerializer(many=True, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)


class FollowUpSerializer(serializers.Serializer):
    required = serializers.BooleanField(required=False, default=False,
                                        error_messages={'invalid': 'Follow-up required must be boolean'})
    date = serializers.DateField(required=False, allow_null=True,
                                 error_messages={'invalid': 'Valid follow-up date is required'})
    notes = serializers.CharField(required=False, allow_blank=True)


class MedicalHistoryEntrySerializer(serializers.Serializer):
    condition = serializers.CharField(max_length=255)
    year = serializers.IntegerField(min_value=1900, max_value=2100, required=False, allow_null=True)
    status = serializers.ChoiceField(choices=MedicalRecord.HISTORY_STATUS_CHOICES, required=False)


class BloodPressureSerializer(serializers.Serializer):
    systolic = serializers.FloatField(min_value=70, max_value=200, error_messages={
        'invalid': 'Systolic pressure must be a number',
        'min_value': 'Systolic pressure must be between 70 and 200',
        'max_value': 'Systolic pressure must be between 70 and 200',
    })
    diastolic = serializers.FloatField(min_value=40, max_value=130, error_messages={
        'invalid': 'Diastolic pressure must be a number',
        'min_value': 'Diastolic pressure must be between 40 and 130',
        'max_value': 'Diastolic pressure must be between 40 and 130',
    })


# vital -> (label, low, high, unit)
VITAL_RANGES = {
    'weight': ('Weight', 0, 500, 'kg'),
    'height': ('Height', 0, 300, 'cm'),
    'heartRate': ('Heart rate', 30, 200, 'bpm'),
    'temperature': ('Temperature', 35, 42, '°C'),
}


def _range_field(label: str, low: int, high: int, unit: str, required: bool = False) -> serializers.FloatField:
    message = f'{label} must be between {low} and {high} {unit}'
    return serializers.FloatField(
        min_value=low, max_value=high, required=required, allow_null=not required,
        error_messages={'invalid': f'{label} must be a number', 'min_value': message, 'max_value': message},
    )


def _check_unit(value: str, label: str, unit: str) -> str:
    if value and value != unit:
        raise serializers.ValidationError(f'{label} must be recorded in {unit}')
    return unit


class VitalsUpdateSerializer(serializers.Serializer):
    weight = _range_field(*VITAL_RANGES['weight'])
    height = _range_field(*VITAL_RANGES['height'])
    heartRate = _range_field(*VITAL_RANGES['heartRate'])
    bloodPressure = BloodPressureSerializer(required=False, allow_null=True)
    temperature = _range_field(*VITAL_RANGES['temperature'])

    def validate(self, attrs):
        provided = {k: v for k, v in attrs.items() if v is not None}
        if not provided:
            raise serializers.ValidationError('At least one vital measurement is required')
        return provided


class MeasurementSerializer(serializers.Serializer):
    """One single-value vital as stored on a record: ``{value, unit, date}``."""
    unit = serializers.CharField(required=False, allow_blank=True)
    date = serializers.DateTimeField(required=False)

    def __init__(self, *args, vital: str = 'weight', **kwargs):
        super().__init__(*args, **kwargs)
        self.vital_label, low, high, self.vital_unit = VITAL_RANGES[vital]
        self.fields['value'] = _range_field(self.vital_label, low, high, self.vital_unit, required=True)

    def validate_unit(self, v):
        return _check_unit(v, self.vital_label, self.vital_unit)


class BloodPressureReadingSerializer(BloodPressureSerializer):
    unit = serializers.CharField(required=False, allow_blank=True)
    date = serializers.DateTimeField(required=False)

    def validate_unit(self, v):
        return _check_unit(v, 'Blood pressure', 'mmHg')


class RecordVitalsSerializer(serializers.Serializer):
    """The ``vitals`` document sent with a medical record."""
    weight = MeasurementSerializer(vital='weight', required=False)
    height = MeasurementSerializer(vital='height', required=False)
    heartRate = MeasurementSerializer(vital='heartRate', required=False)
    bloodPressure = BloodPressureReadingSerializer(required=False)
    temperature = MeasurementSerializer(vital='temperature', required=False)


class MedicalRecordFieldsSerializer(serializers.Serializer):
    """Clinical fields accepted on create and update."""
    diagnosis = serializers.CharField(required=False, allow_blank=True)
    symptoms = serializers.ListField(child=serializers.CharField(max_length=255), required=False,
                                     error_messages={'not_a_list': 'Symptoms must be an array'})
    prescription = PrescriptionSerializer(required=False)
    treatment = serializers.CharField(required=False, allow_blank=True)
    followUp = FollowUpSerializer(required=False)
    allergies = serializers.ListField(child=serializers.CharField(max_length=255), required=False,
                                      error_messages={'not_a_list': 'Allergies must be an array'})
    medicalHistory = MedicalHistoryEntrySerializer(many=True, required=False)
    vitals = RecordVitalsSerializer(required=False)
    remedy = serializers.CharField(required=False, allow_blank=True)
    formula = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_diagnosis(self, v):
        return _clean(v)

    def validate_treatment(self, v):
        return _clean(v)

    def validate_remedy(self, v):
        return _clean(v)

    def validate_formula(self, v):
        return _clean(v)

    def validate_notes(self, v):
        return _clean(v)


class MedicalRecordCreateSerializer(MedicalRecordFieldsSerializer):
    patientId = serializers.IntegerField(min_value=1, error_messages={'invalid': 'Valid patient ID is required'})
    appointmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True,
                                             error_messages={'invalid': 'Valid appointment ID is required'})


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=10)


class PatientSearchQuerySerializer(PageQuerySerializer):
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=20)
    search = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
