from django.conf import settings
from django.core.cache import cache
from django.core.management.base import BaseCommand
from django.utils import timezone

from core.services.doctors import DIRECTORY_CACHE_KEY, list_doctors


class Command(BaseCommand):
    help = "Warm and refresh API caches."

    def handle(self, *args, **options):
        now = timezone.now()
        doctors = list_doctors()
        cache.set(DIRECTORY_CACHE_KEY, doctors, settings.DOCTOR_DIRECTORY_CACHE_SECONDS)
        self.stdout.write(self.style.SUCCESS(
            f"Refreshed {DIRECTORY_CACHE_KEY} ({len(doctors)} doctors) at {now}"
        ))
