from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase
from rest_framework.test import APIClient

from accounts.models import User
from drivers.services import update_driver_availability
from rides.models import Payment
from services.matching import accept_ride_request
from services.ride_management import InvalidInputError, create_ride_request, update_ride_status
from services.ride_management.exceptions import RoleNotAllowedError
from services.settlement import get_balance, list_payments


def make_user(username, role, **extra):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="pass12345",
        role=role,
        **extra,
    )


def complete_trip(passenger, driver, payment):
    ride_request = create_ride_request(passenger, "Saket", "Hauz Khas", "bike", payment).ride_request
    ride = accept_ride_request(driver, ride_request.id).ride
    return update_ride_status(driver, ride.id, "completed")


class DriverAvailabilityTests(TestCase):
    def setUp(self):
        self.driver = make_user("driver", "driver", is_available=True)
        self.passenger = make_user("passenger", "passenger")

    def test_toggle_availability(self):
        update_driver_availability(self.driver, False)
        self.assertFalse(User.objects.get(pk=self.driver.pk).is_available)

        update_driver_availability(self.driver, True)
        self.assertTrue(User.objects.get(pk=self.driver.pk).is_available)

    def test_non_boolean_is_invalid(self):
        for value in ("yes", 1, None):
            with self.assertRaises(InvalidInputError):
                update_driver_availability(self.driver, value)

    def test_passenger_cannot_toggle(self):
        with self.assertRaises(RoleNotAllowedError):
            update_driver_availability(self.passenger, True)

    @patch("drivers.services.logger")
    def test_toggle_is_logged(self, mock_logger):
        update_driver_availability(self.driver, False)
        mock_logger.info.assert_called_once()


class SettlementLedgerTests(TestCase):
    def setUp(self):
        self.driver = make_user("driver", "driver", is_available=True)
        self.passenger = make_user("passenger", "passenger")

    def test_balance_accumulates_over_rides(self):
        complete_trip(self.passenger, self.driver, 500)
        complete_trip(self.passenger, self.driver, Decimal("120.50"))

        self.assertEqual(get_balance(self.driver), Decimal("620.50"))
        self.assertEqual(Payment.objects.filter(driver=self.driver).count(), 2)

    def test_payments_listed_newest_first(self):
        first = complete_trip(self.passenger, self.driver, 100).payment
        second = complete_trip(self.passenger, self.driver, 200).payment

        self.assertEqual([p.id for p in list_payments(self.driver)], [second.id, first.id])

    def test_balance_ignores_stale_user_object(self):
        complete_trip(self.passenger, self.driver, 500)
        # self.driver was loaded before the credit
        self.assertEqual(self.driver.balance, Decimal("0"))
        self.assertEqual(get_balance(self.driver), Decimal("500"))

    def test_passenger_has_no_ledger(self):
        with self.assertRaises(RoleNotAllowedError):
            get_balance(self.passenger)
        with self.assertRaises(RoleNotAllowedError):
            list_payments(self.passenger)


class DriverApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.driver = make_user("driver", "driver", is_available=True)
        self.passenger = make_user("passenger", "passenger")
        self.client.force_authenticate(user=self.driver)

    def test_set_availability(self):
        response = self.client.put("/api/driver/availability/", {"is_available": False}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["is_available"])
        self.assertFalse(User.objects.get(pk=self.driver.pk).is_available)

    def test_missing_availability_is_bad_request(self):
        response = self.client.put("/api/driver/availability/", {}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["success"], False)
        self.assertEqual(response.json()["error"], "invalid_input")
        self.assertEqual(response.json()["message"], "is_available: This field is required.")
        self.assertIn("is_available", response.json()["details"])

    def test_non_object_availability_body_is_bad_request(self):
        response = self.client.put("/api/driver/availability/", [True], format="json")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_input")

    def test_passenger_is_forbidden(self):
        self.client.force_authenticate(user=self.passenger)

        for url in ("/api/driver/availability/", "/api/driver/balance/", "/api/driver/payments/"):
            response = self.client.get(url)
            self.assertEqual(response.status_code, 403, url)
            self.assertEqual(response.json(), {
                "success": False,
                "error": "role_not_allowed",
                "message": "Only drivers can access this endpoint",
            })

    def test_balance_and_payments_after_trip(self):
        complete_trip(self.passenger, self.driver, 500)

        response = self.client.get("/api/driver/balance/")
        self.assertEqual(response.json()["balance"], 500)

        response = self.client.get("/api/driver/payments/")
        self.assertEqual(response.json()["count"], 1)
        self.assertEqual(response.json()["payments"][0]["amount"], 500)

    def test_current_ride(self):
        response = self.client.get("/api/driver/current-ride/")
        self.assertFalse(response.json()["has_active_ride"])

        ride_request = create_ride_request(self.passenger, "Saket", "Hauz Khas", "car", 300).ride_request
        ride = accept_ride_request(self.driver, ride_request.id).ride

        response = self.client.get("/api/driver/current-ride/")
        self.assertTrue(response.json()["has_active_ride"])
        self.assertEqual(response.json()["ride"]["id"], ride.id)
