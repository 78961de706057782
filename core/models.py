"""
Database models for the clinic backend.

These models capture the core concepts of the system: accounts (doctors
and patients), appointments and medical records.  Role specific account
data lives in one-to-one profile tables so that a doctor never carries
patient fields and vice versa.  Document shaped parts of a medical
record (vitals, prescription, history) are stored as JSON so each record
keeps the shape the API exposes.
"""
from __future__ import annotations

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.db.models import Q


class UserManager(BaseUserManager):
    """Manager for email-identified accounts."""

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('email is required')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.ROLE_DOCTOR)
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """Clinic account identified by email.

    ``role`` selects which profile table holds the role specific fields:
    :class:`DoctorProfile` for doctors, :class:`PatientProfile` for
    patients.  The role is fixed once the account exists.
    """
    ROLE_DOCTOR = 'doctor'
    ROLE_PATIENT = 'patient'
    ROLE_CHOICES = [
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_PATIENT, 'Patient'),
    ]

    username = None
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, db_index=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS: list[str] = []

    objects = UserManager()

    @property
    def is_doctor(self) -> bool:
        return self.role == self.ROLE_DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == self.ROLE_PATIENT

    def __str__(self) -> str:
        return f"{self.email} ({self.role})"


class DoctorProfile(models.Model):
    """Fields every doctor account must carry."""
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='doctor_profile')
    specialization = models.CharField(max_length=255)
    license_number = models.CharField(max_length=100)
    experience = models.PositiveIntegerField(help_text="Years of practice")

    def __str__(self) -> str:
        return f"{self.user.name} ({self.specialization})"


class PatientProfile(models.Model):
    """Stores patient specific information separate from the User model."""
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
    ]
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='patient_profile')
    age = models.PositiveIntegerField()
    gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    address = models.TextField()
    # {"name": ..., "phone": ..., "relationship": ...}
    emergency_contact = models.JSONField(default=dict, blank=True)

    def __str__(self) -> str:
        return f"{self.user.name} ({self.age}, {self.gender})"


class Appointment(models.Model):
    """A booking of one patient with one doctor for a date and time slot."""
    STATUS_PENDING = 'pending'
    STATUS_ACCEPTED = 'accepted'
    STATUS_REJECTED = 'rejected'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACCEPTED, 'Accepted'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    # Statuses that occupy a slot
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED)

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='patient_appointments')
    doctor = models.ForeignKey(User, on_delete=models.CASCADE, related_name='doctor_appointments')
    date = models.DateField()
    time = models.CharField(max_length=20)
    reason = models.TextField()
    symptoms = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    notes = models.TextField(blank=True)
    prescription = models.TextField(blank=True)
    follow_up_date = models.DateField(null=True, blank=True)
    rescheduled_from = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    rescheduled_to = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=['doctor', 'date', 'time'],
                condition=Q(status__in=['pending', 'accepted']),
                name='uniq_active_appointment_slot',
            ),
        ]
        indexes = [
            models.Index(fields=['doctor', 'date', 'time']),
            models.Index(fields=['patient', 'date']),
        ]

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES

    def __str__(self) -> str:
        return f"appt {self.id} d={self.doctor_id} p={self.patient_id} {self.date} {self.time} [{self.status}]"


class MedicalRecord(models.Model):
    """Clinical document about one patient.

    ``doctor`` is the author.  It is empty only for records created by a
    patient's own vitals submission before any doctor wrote a record.
    ``remedy`` and ``formula`` are narrative fields shown to doctors only.
    """
    HISTORY_STATUS_CHOICES = ('active', 'resolved', 'chronic')

    patient = models.ForeignKey(User, on_delete=models.CASCADE, related_name='medical_records')
    doctor = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='authored_records'
    )
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='medical_records'
    )
    vitals = models.JSONField(default=dict, blank=True)
    diagnosis = models.TextField(blank=True)
    symptoms = models.JSONField(default=list, blank=True)
    # {"medications": [{name, dosage, frequency, duration, instructions}], "notes": ""}
    prescription = models.JSONField(default=dict, blank=True)
    treatment = models.TextField(blank=True)
    follow_up_required = models.BooleanField(default=False)
    follow_up_date = models.DateField(null=True, blank=True)
    follow_up_notes = models.TextField(blank=True)
    allergies = models.JSONField(default=list, blank=True)
    # [{"condition": ..., "year": ..., "status": active|resolved|chronic}]
    medical_history = models.JSONField(default=list, blank=True)
    remedy = models.TextField(blank=True)
    formula = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=['patient', '-created_at']),
            models.Index(fields=['doctor', '-created_at']),
        ]

    def __str__(self) -> str:
        return f"record {self.id} p={self.patient_id} d={self.doctor_id}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]
