import base64

from django.test import TestCase
from rest_framework.test import APIClient

from accounts.directory import (
    AccountNotFoundError,
    InvalidCredentialsError,
    get_account,
    verify_credentials,
)
from accounts.models import User


class UserDirectoryTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="asha",
            email="asha@example.com",
            password="secret-pass",
            role=User.Role.PASSENGER,
        )

    def test_verify_by_username_or_email(self):
        self.assertEqual(verify_credentials("asha", "secret-pass"), self.user)
        self.assertEqual(verify_credentials("ASHA@example.com", "secret-pass"), self.user)

    def test_wrong_secret_or_unknown_identifier(self):
        for identifier, secret in (("asha", "nope"), ("ghost", "secret-pass"), ("", ""), (None, None)):
            with self.assertRaises(InvalidCredentialsError):
                verify_credentials(identifier, secret)

    def test_inactive_account_cannot_log_in(self):
        self.user.is_active = False
        self.user.save()
        with self.assertRaises(InvalidCredentialsError):
            verify_credentials("asha", "secret-pass")

    def test_get_account(self):
        self.assertEqual(get_account(self.user.pk).username, "asha")
        with self.assertRaises(AccountNotFoundError):
            get_account(9999)

    def test_role_helpers(self):
        self.assertTrue(self.user.is_passenger)
        self.assertFalse(self.user.is_driver)


class AuthApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def _register(self, username, role, email=None):
        return self.client.post("/api/auth/register/", {
            "username": username,
            "email": email or f"{username}@example.com",
            "password": "password123",
            "role": role,
        }, format="json")

    def test_register_passenger(self):
        response = self._register("ravi", "passenger")

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["user"]["role"], "passenger")
        self.assertFalse(response.json()["user"]["is_available"])
        self.assertIn("access", response.json()["tokens"])

    def test_register_driver_starts_available(self):
        response = self._register("meera", "driver")

        self.assertEqual(response.status_code, 201)
        self.assertTrue(User.objects.get(username="meera").is_available)
        self.assertEqual(response.json()["user"]["balance"], 0)

    def test_register_rejects_bad_role_and_duplicate_email(self):
        self.assertEqual(self._register("x", "pilot").status_code, 400)

        self._register("ravi", "passenger")
        response = self._register("ravi2", "passenger", email="RAVI@example.com")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_input")
        self.assertFalse(response.json()["success"])
        self.assertIn("email", response.json()["details"])
        self.assertTrue(response.json()["message"].startswith("email:"))

    def test_login_then_me_with_bearer_token(self):
        self._register("ravi", "passenger")

        response = self.client.post("/api/auth/login/", {"username": "ravi", "password": "password123"}, format="json")
        self.assertEqual(response.status_code, 200)
        access = response.json()["tokens"]["access"]

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["username"], "ravi")

    def test_me_with_basic_auth(self):
        self._register("ravi", "passenger")
        credentials = base64.b64encode(b"ravi:password123").decode()

        self.client.credentials(HTTP_AUTHORIZATION=f"Basic {credentials}")
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, 200)

    def test_login_wrong_password(self):
        self._register("ravi", "passenger")
        response = self.client.post("/api/auth/login/", {"username": "ravi", "password": "wrong"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_input")
        self.assertEqual(response.json()["message"], "Invalid username or password")

    def test_refresh(self):
        tokens = self._register("ravi", "passenger").json()["tokens"]

        response = self.client.post("/api/auth/refresh/", {"refresh": tokens["refresh"]}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertIn("access", response.json())

        response = self.client.post("/api/auth/refresh/", {"refresh": "garbage"}, format="json")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["error"], "invalid_token")

        response = self.client.post("/api/auth/refresh/", [tokens["refresh"]], format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_body")

    def test_me_requires_authentication(self):
        self.assertEqual(self.client.get("/api/auth/me/").status_code, 401)


class HealthCheckTests(TestCase):
    def test_health_is_public(self):
        response = APIClient().get("/health/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["services"]["database"], "healthy")
