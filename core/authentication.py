"""
Bearer token authentication for the API.

This module defines a subclass of simplejwt's ``JWTAuthentication``
that the project's ``REST_FRAMEWORK`` settings point at.  By keeping it
separate from any view definitions we avoid circular import issues
when the REST framework imports authentication classes during
initialization.
"""
from __future__ import annotations

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.tokens import AccessToken


class BearerTokenAuthentication(JWTAuthentication):
    """Signed access token sent as ``Authorization: Bearer <token>``.

    The token carries the account id in the ``user_id`` claim and
    expires after ``SIMPLE_JWT['ACCESS_TOKEN_LIFETIME']`` (seven days by
    default).
    """

    www_authenticate_realm = 'clinic'


def issue_token(user) -> str:
    """Return a fresh access token for ``user``."""
    return str(AccessToken.for_user(user))
