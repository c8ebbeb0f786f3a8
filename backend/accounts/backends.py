"""
Login backend for HQ staff and unit commanders.

HQ staff sign in with their username, email or phone number; commanders
usually know their service number better than any of those, so it is
accepted as well.  Registered in ``settings.AUTHENTICATION_BACKENDS``.
"""

from __future__ import annotations

from functools import reduce
from operator import or_

from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

User = get_user_model()

# Field lookups tried against the submitted identifier.
IDENTIFIER_LOOKUPS = (
    "username",
    "email__iexact",
    "phone_number",
    "commander_profile__service_number__iexact",
)


class MultiFieldAuthBackend(ModelBackend):
    """
    ``authenticate(identifier=..., password=...)``; the admin login form's
    ``username=`` keyword is treated as an identifier too.
    """

    def authenticate(self, request, identifier=None, password=None, **kwargs):
        identifier = identifier or kwargs.get(User.USERNAME_FIELD)
        if not identifier or password is None:
            return None

        match = reduce(or_, (Q(**{lookup: identifier.strip()}) for lookup in IDENTIFIER_LOOKUPS))
        candidates = list(User.objects.filter(match).distinct()[:2])
        if len(candidates) != 1:
            # Keep response time flat for unknown or ambiguous identifiers.
            User().set_password(password)
            return None

        user = candidates[0]
        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
