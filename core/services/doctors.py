from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache

User = get_user_model()

DIRECTORY_CACHE_KEY = 'doctors:directory'


def list_doctors() -> list[dict]:
    qs = (User.objects.filter(role='doctor', is_active=True, doctor_profile__isnull=False)
          .select_related('doctor_profile').order_by('name', 'id'))
    return [{
        'id': u.id,
        'name': u.name,
        'specialization': u.doctor_profile.specialization,
        'experience': u.doctor_profile.experience,
        'licenseNumber': u.doctor_profile.license_number,
    } for u in qs]


def cached_doctor_directory() -> list[dict]:
    data = cache.get(DIRECTORY_CACHE_KEY)
    if data is None:
        data = list_doctors()
        cache.set(DIRECTORY_CACHE_KEY, data, settings.DOCTOR_DIRECTORY_CACHE_SECONDS)
    return data


def invalidate_doctor_directory() -> None:
    cache.delete(DIRECTORY_CACHE_KEY)
