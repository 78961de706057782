import bleach
from rest_framework import serializers

from core.models import User, PatientProfile

ROLE_CHOICES = [User.ROLE_DOCTOR, User.ROLE_PATIENT]
GENDER_CHOICES = [value for value, _ in PatientProfile.GENDER_CHOICES]

DOCTOR_FIELDS = ('specialization', 'licenseNumber', 'experience')
PATIENT_FIELDS = ('age', 'gender', 'address')


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class EmergencyContactSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    relationship = serializers.CharField(max_length=64, required=False, allow_blank=True)


class ProfileFieldsSerializer(serializers.Serializer):
    """Fields shared by registration and profile updates."""
    name = serializers.CharField(max_length=255)
    phone = serializers.CharField(max_length=32)
    # doctor
    specialization = serializers.CharField(max_length=255, required=False)
    licenseNumber = serializers.CharField(max_length=100, required=False)
    experience = serializers.IntegerField(min_value=0, required=False,
                                          error_messages={'min_value': 'Experience must be a positive number'})
    # patient
    age = serializers.IntegerField(min_value=1, max_value=120, required=False,
                                   error_messages={'min_value': 'Age must be between 1 and 120',
                                                   'max_value': 'Age must be between 1 and 120'})
    gender = serializers.ChoiceField(choices=GENDER_CHOICES, required=False,
                                     error_messages={'invalid_choice': 'Gender must be male, female, or other'})
    address = serializers.CharField(required=False)
    emergencyContact = EmergencyContactSerializer(required=False)

    def validate_name(self, v):
        v = _clean(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters long')
        return v

    def validate_phone(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Phone number is required')
        return v

    def validate_specialization(self, v):
        return _clean(v)

    def validate_licenseNumber(self, v):
        return _clean(v)

    def validate_address(self, v):
        return _clean(v)


class RegisterSerializer(ProfileFieldsSerializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=6, write_only=True,
                                     error_messages={'min_length': 'Password must be at least 6 characters long'})
    role = serializers.ChoiceField(choices=ROLE_CHOICES,
                                   error_messages={'invalid_choice': 'Role must be either doctor or patient'})

    def validate_email(self, v):
        return v.strip().lower()

    def validate(self, attrs):
        required = DOCTOR_FIELDS if attrs['role'] == User.ROLE_DOCTOR else PATIENT_FIELDS
        missing = {}
        for field in required:
            value = attrs.get(field)
            if value is None or (isinstance(value, str) and not value):
                missing[field] = f'{field} is required for {attrs["role"]}s'
        if missing:
            raise serializers.ValidationError(missing)
        return attrs


class ProfileUpdateSerializer(ProfileFieldsSerializer):
    """Partial profile update; ``role`` may be echoed back but never changed."""
    role = serializers.ChoiceField(choices=ROLE_CHOICES, required=False)

    def validate_role(self, v):
        user = self.context.get('user')
        if user is not None and v != user.role:
            raise serializers.ValidationError('Role cannot be changed')
        return v

    def validate(self, attrs):
        for field in ('specialization', 'licenseNumber', 'address'):
            if field in attrs and not attrs[field]:
                raise serializers.ValidationError({field: f'{field} cannot be empty'})
        return attrs


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()
    role = serializers.ChoiceField(choices=ROLE_CHOICES,
                                   error_messages={'invalid_choice': 'Role must be either doctor or patient'})

    def validate_email(self, v):
        return v.strip().lower()

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v
