# core/management/commands/ensure_demo_users.py
from django.core.management.base import BaseCommand
from django.db import transaction

from core.models import User, DoctorProfile, PatientProfile
from core.services.doctors import invalidate_doctor_directory

DEMO_PASSWORD = "123456"

DEMO_SET = [
    {
        "email": "doctor@example.com",
        "name": "Demo Doctor",
        "phone": "555-0100",
        "role": User.ROLE_DOCTOR,
        "profile": {"specialization": "General Practice", "license_number": "DEMO-0001", "experience": 5},
    },
    {
        "email": "patient@example.com",
        "name": "Demo Patient",
        "phone": "555-0200",
        "role": User.ROLE_PATIENT,
        "profile": {"age": 30, "gender": "other", "address": "1 Demo Street", "emergency_contact": {}},
    },
]


class Command(BaseCommand):
    help = "Ensure a demo doctor and patient exist with password=123456 (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default=DEMO_PASSWORD, help="password to set on the demo accounts")

    @transaction.atomic
    def handle(self, *args, **opts):
        for entry in DEMO_SET:
            user = User.objects.filter(email=entry["email"]).first()
            if user is None:
                user = User.objects.create_user(
                    email=entry["email"], password=opts["password"],
                    name=entry["name"], phone=entry["phone"], role=entry["role"],
                )
            elif user.role != entry["role"]:
                # a real account holds this address; leave it alone
                self.stderr.write(self.style.WARNING(
                    f"skipped: {user.email} is registered as {user.role}, not {entry['role']}"
                ))
                continue
            else:
                # reset password and activation
                user.set_password(opts["password"])
                user.is_active = True
                user.save(update_fields=["password", "is_active"])

            profile_model = DoctorProfile if entry["role"] == User.ROLE_DOCTOR else PatientProfile
            profile_model.objects.update_or_create(user=user, defaults=entry["profile"])
            self.stdout.write(self.style.SUCCESS(f"ok: {user.email} ({user.role})"))

        transaction.on_commit(invalidate_doctor_directory)
        self.stdout.write(self.style.SUCCESS("All demo users ensured."))
