"""
Integration tests — login with multiple identifiers and the "me" endpoint.

Endpoint under test:  POST /api/accounts/auth/login/
                      (named URL: accounts:login)
Request payload:      {"identifier": "<username|email|phone>",
                       "password": "<password>"}
Success response:     HTTP 200, body contains {"access": "...", "refresh": "...",
                      "user": {...}}
Failure response:     HTTP 400 — CustomTokenObtainPairSerializer.validate
                      rejects invalid credentials.
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

User = get_user_model()

# ── Constants ────────────────────────────────────────────────────────────────
_PASSWORD = "Str0ng!Pass99"

_USER_FIELDS = {
    "username":     "login_test_user",
    "email":        "login_test_user@example.com",
    "phone_number": "08130000099",
    "first_name":   "Login",
    "last_name":    "Tester",
}


class TestAuthLoginMultiIdentifier(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = User.objects.create_user(
            password=_PASSWORD,
            **_USER_FIELDS,
        )

    def setUp(self):
        self.client = APIClient()
        self.login_url = reverse("accounts:login")

    def _post_login(self, identifier: str, password: str):
        return self.client.post(
            self.login_url,
            {"identifier": identifier, "password": password},
            format="json",
        )

    def _assert_token_response(self, response):
        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertIn("access", response.data)
        self.assertIn("refresh", response.data)
        self.assertEqual(response.data["user"]["username"], _USER_FIELDS["username"])

    def test_login_with_username(self):
        self._assert_token_response(self._post_login(_USER_FIELDS["username"], _PASSWORD))

    def test_login_with_email_case_insensitive(self):
        self._assert_token_response(
            self._post_login(_USER_FIELDS["email"].upper(), _PASSWORD)
        )

    def test_login_with_phone_number(self):
        self._assert_token_response(self._post_login(_USER_FIELDS["phone_number"], _PASSWORD))

    def test_wrong_password_is_rejected(self):
        response = self._post_login(_USER_FIELDS["username"], "wrong-password")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertNotIn("access", response.data)

    def test_unknown_identifier_is_rejected(self):
        response = self._post_login("nobody@example.com", _PASSWORD)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inactive_user_cannot_log_in(self):
        User.objects.filter(pk=self.user.pk).update(is_active=False)
        response = self._post_login(_USER_FIELDS["username"], _PASSWORD)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_returns_profile(self):
        token = self._post_login(_USER_FIELDS["username"], _PASSWORD).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

        response = self.client.get(reverse("accounts:me"))

        self.assertEqual(response.status_code, status.HTTP_200_OK, msg=response.data)
        self.assertEqual(response.data["email"], _USER_FIELDS["email"])
        self.assertIsNone(response.data["role"])
        self.assertEqual(response.data["permissions"], [])

    def test_me_requires_authentication(self):
        response = self.client.get(reverse("accounts:me"))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
