"""
Django admin registrations for the core models.

Accounts, appointments and medical records can be inspected and
corrected through ``/admin/``.  The audit trail is read-only.
"""

from django.contrib import admin

from .models import (
    User,
    DoctorProfile,
    PatientProfile,
    Appointment,
    MedicalRecord,
    AuditEvent,
)


class DoctorProfileInline(admin.StackedInline):
    model = DoctorProfile
    can_delete = False
    extra = 0


class PatientProfileInline(admin.StackedInline):
    model = PatientProfile
    can_delete = False
    extra = 0


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'name', 'role', 'phone', 'is_active', 'date_joined')
    list_filter = ('role', 'is_active')
    search_fields = ('email', 'name', 'phone')
    exclude = ('password', 'user_permissions', 'groups')
    inlines = (DoctorProfileInline, PatientProfileInline)


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'patient', 'date', 'time', 'status', 'created_at')
    list_filter = ('status', 'date')
    search_fields = ('id', 'doctor__email', 'doctor__name', 'patient__email', 'patient__name')
    raw_id_fields = ('doctor', 'patient', 'rescheduled_from', 'rescheduled_to')


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'diagnosis', 'follow_up_required', 'created_at')
    list_filter = ('follow_up_required',)
    search_fields = ('id', 'patient__email', 'patient__name', 'diagnosis')
    raw_id_fields = ('patient', 'doctor', 'appointment')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('id', 'user', 'action', 'object_type', 'object_id', 'created_at')
    list_filter = ('action', 'object_type')
    search_fields = ('object_id', 'user__email')

    def has_change_permission(self, request, obj=None):
        return False
