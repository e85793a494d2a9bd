from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import User
from rides.models import Ride, RideRequest
from services.matching import accept_ride_request
from services.ride_management import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    cancel_ride_by_passenger,
    cancel_ride_request,
    create_ride_request,
    get_current_passenger_ride,
    get_passenger_ride_history,
    update_ride_status,
)
from services.ride_management.exceptions import (
    ActiveRideExistsError,
    InvalidTransitionError,
    RideNotFoundError,
    RoleNotAllowedError,
)


def make_user(username, role, **extra):
    return User.objects.create_user(
        username=username,
        email=f"{username}@example.com",
        password="pass12345",
        role=role,
        **extra,
    )


class RideRequestManagerTests(TestCase):
    def setUp(self):
        self.passenger = make_user("passenger", "passenger")
        self.driver = make_user("driver", "driver", is_available=True)

    def _request(self, **overrides):
        fields = {
            "pickup_location": "Connaught Place",
            "drop_location": "India Gate",
            "ride_type": "car",
            "payment": 500,
        }
        fields.update(overrides)
        return create_ride_request(self.passenger, **fields)

    def test_create_opens_active_request(self):
        result = self._request(pickup_location="  Connaught Place  ")
        ride_request = result.ride_request

        self.assertTrue(result.success)
        self.assertEqual(ride_request.status, RideRequest.Status.REQUESTED)
        self.assertTrue(ride_request.is_active)
        self.assertEqual(ride_request.pickup_location, "Connaught Place")
        self.assertEqual(ride_request.payment, Decimal("500.00"))

    def test_fractional_payment_is_rounded_to_cents(self):
        ride_request = self._request(payment=12.345).ride_request
        self.assertEqual(ride_request.payment, Decimal("12.35"))

    def test_invalid_fields_are_rejected(self):
        bad_inputs = [
            {"pickup_location": ""},
            {"pickup_location": "   "},
            {"drop_location": None},
            {"ride_type": "helicopter"},
            {"ride_type": None},
            {"payment": 0},
            {"payment": -5},
            {"payment": "500"},
            {"payment": True},
            {"payment": None},
            {"payment": float("nan")},
            {"payment": float("inf")},
            {"payment": 0.001},
            {"payment": 10 ** 12},
        ]
        for overrides in bad_inputs:
            with self.subTest(overrides=overrides):
                with self.assertRaises(InvalidInputError):
                    self._request(**overrides)

        self.assertFalse(RideRequest.objects.exists())

    def test_driver_cannot_request(self):
        with self.assertRaises(RoleNotAllowedError):
            create_ride_request(self.driver, "A", "B", "bike", 50)

    def test_second_request_is_conflict(self):
        self._request()

        with self.assertRaises(ActiveRideExistsError) as ctx:
            self._request(ride_type="bike")

        self.assertIsInstance(ctx.exception, ConflictError)
        self.assertEqual(RideRequest.objects.filter(passenger=self.passenger).count(), 1)

    def test_request_while_ride_active_is_conflict(self):
        ride_request = self._request().ride_request
        accept_ride_request(self.driver, ride_request.id)

        with self.assertRaises(ActiveRideExistsError):
            self._request()

    def test_new_request_allowed_after_cancel(self):
        first = self._request().ride_request
        cancel_ride_request(self.passenger, first.id)

        second = self._request().ride_request
        self.assertNotEqual(first.id, second.id)

    def test_current_ride_follows_request_into_ride(self):
        self.assertIsNone(get_current_passenger_ride(self.passenger))

        ride_request = self._request().ride_request
        current = get_current_passenger_ride(self.passenger)
        self.assertIsInstance(current, RideRequest)
        self.assertEqual(current.id, ride_request.id)

        ride = accept_ride_request(self.driver, ride_request.id).ride
        current = get_current_passenger_ride(self.passenger)
        self.assertIsInstance(current, Ride)
        self.assertEqual(current.id, ride.id)

        update_ride_status(self.driver, ride.id, "completed")
        self.assertIsNone(get_current_passenger_ride(self.passenger))

    def test_cancel_open_request(self):
        ride_request = self._request().ride_request

        result = cancel_ride_request(self.passenger, ride_request.id)

        self.assertEqual(result.ride_request.status, RideRequest.Status.CANCELLED)
        self.assertFalse(result.ride_request.is_active)

    def test_cancel_twice_is_conflict(self):
        ride_request = self._request().ride_request
        cancel_ride_request(self.passenger, ride_request.id)

        with self.assertRaises(ConflictError):
            cancel_ride_request(self.passenger, ride_request.id)

    def test_cancel_unknown_or_foreign_request_is_not_found(self):
        ride_request = self._request().ride_request
        other = make_user("other", "passenger")

        with self.assertRaises(RideNotFoundError):
            cancel_ride_request(self.passenger, 9999)
        with self.assertRaises(NotFoundError):
            cancel_ride_request(other, ride_request.id)

    def test_history_lists_finished_items_newest_first(self):
        first = self._request().ride_request
        cancel_ride_request(self.passenger, first.id)
        RideRequest.objects.filter(pk=first.id).update(created_at=timezone.now() - timedelta(hours=2))

        second = self._request().ride_request
        ride = accept_ride_request(self.driver, second.id).ride

        # Active ride is not history yet
        self.assertEqual([item.id for item in get_passenger_ride_history(self.passenger)], [first.id])

        update_ride_status(self.driver, ride.id, "completed")
        history = get_passenger_ride_history(self.passenger)

        self.assertEqual(len(history), 2)
        self.assertIsInstance(history[0], Ride)
        self.assertEqual(history[0].id, ride.id)
        self.assertIsInstance(history[1], RideRequest)
        self.assertEqual(history[1].id, first.id)

    def test_history_order_is_stable_on_equal_timestamps(self):
        first = self._request().ride_request
        cancel_ride_request(self.passenger, first.id)

        second = self._request().ride_request
        ride = accept_ride_request(self.driver, second.id).ride
        update_ride_status(self.driver, ride.id, "completed")

        same_moment = timezone.now() - timedelta(hours=1)
        RideRequest.objects.filter(pk=first.id).update(created_at=same_moment)
        Ride.objects.filter(pk=ride.id).update(created_at=same_moment)

        for _ in range(3):
            history = get_passenger_ride_history(self.passenger)
            self.assertEqual(
                [(type(item), item.id) for item in history],
                [(Ride, ride.id), (RideRequest, first.id)],
            )


class PassengerRideCancelTests(TestCase):
    def setUp(self):
        self.passenger = make_user("passenger", "passenger")
        self.driver = make_user("driver", "driver", is_available=True)
        self.ride_request = create_ride_request(
            self.passenger, "Connaught Place", "India Gate", "car", 500
        ).ride_request

    def test_cancel_open_request_by_id(self):
        result = cancel_ride_by_passenger(self.passenger, self.ride_request.id)

        self.assertIsNone(result.ride)
        self.assertEqual(result.ride_request.status, RideRequest.Status.CANCELLED)

    def test_cancel_accepted_ride_frees_driver(self):
        ride = accept_ride_request(self.driver, self.ride_request.id).ride

        result = cancel_ride_by_passenger(self.passenger, ride.id)

        self.assertEqual(result.ride.status, Ride.Status.CANCELLED)
        self.assertFalse(result.ride.is_active)
        self.assertTrue(result.extra["was_assigned"])
        self.assertFalse(Ride.objects.filter(driver=self.driver, is_active=True).exists())

    def test_started_ride_cannot_be_cancelled_by_passenger(self):
        ride = accept_ride_request(self.driver, self.ride_request.id).ride
        update_ride_status(self.driver, ride.id, "in_progress")

        with self.assertRaises(InvalidTransitionError):
            cancel_ride_by_passenger(self.passenger, ride.id)

        ride.refresh_from_db()
        self.assertEqual(ride.status, Ride.Status.IN_PROGRESS)

    def test_completed_ride_cannot_be_cancelled(self):
        ride = accept_ride_request(self.driver, self.ride_request.id).ride
        update_ride_status(self.driver, ride.id, "completed")

        with self.assertRaises(ConflictError):
            cancel_ride_by_passenger(self.passenger, ride.id)

    def test_other_passenger_ride_is_not_found(self):
        ride = accept_ride_request(self.driver, self.ride_request.id).ride
        other = make_user("other", "passenger")

        with self.assertRaises(NotFoundError):
            cancel_ride_by_passenger(other, ride.id)


class PassengerApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.passenger = make_user("passenger", "passenger")
        self.driver = make_user("driver", "driver", is_available=True)
        self.client.force_authenticate(user=self.passenger)

    def _create(self, **overrides):
        body = {
            "pickup_location": "Connaught Place",
            "drop_location": "India Gate",
            "ride_type": "car",
            "payment": 500,
        }
        body.update(overrides)
        return self.client.post("/api/passenger/request/", body, format="json")

    def test_create_request(self):
        response = self._create()

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data["ride_request"]["status"], "requested")
        self.assertEqual(data["ride_request"]["source"], "RideRequest")
        self.assertTrue(RideRequest.objects.filter(pk=data["ride_request_id"]).exists())

    def test_invalid_payment_is_bad_request(self):
        response = self._create(payment="five hundred")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_payment")
        self.assertFalse(response.json()["success"])

    def test_second_request_is_conflict(self):
        self._create()
        response = self._create()

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "active_ride_exists")

    def test_driver_cannot_create_request(self):
        self.client.force_authenticate(user=self.driver)
        response = self._create()
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"], "role_not_allowed")
        self.assertEqual(response.json()["message"], "Only passengers can access this endpoint")

    def test_non_object_body_is_bad_request(self):
        response = self.client.post("/api/passenger/request/", ["Connaught Place", "India Gate"], format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "invalid_body")
        self.assertFalse(RideRequest.objects.exists())

    def test_current_ride_polling(self):
        response = self.client.get("/api/passenger/current/")
        self.assertFalse(response.json()["has_active_ride"])

        request_id = self._create().json()["ride_request_id"]
        response = self.client.get("/api/passenger/current/")
        self.assertTrue(response.json()["has_active_ride"])
        self.assertEqual(response.json()["source"], "RideRequest")
        self.assertFalse(response.json()["driver_assigned"])

        accept_ride_request(self.driver, request_id)
        response = self.client.get("/api/passenger/current/")
        self.assertEqual(response.json()["source"], "Ride")
        self.assertEqual(response.json()["status"], "accepted")
        self.assertTrue(response.json()["driver_assigned"])

    def test_cancel_and_history(self):
        request_id = self._create().json()["ride_request_id"]

        response = self.client.post(f"/api/passenger/{request_id}/cancel/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "cancelled")
        self.assertEqual(response.json()["source"], "RideRequest")

        response = self.client.post(f"/api/passenger/{request_id}/cancel/")
        self.assertEqual(response.status_code, 409)

        response = self.client.get("/api/passenger/history/")
        self.assertEqual(response.json()["count"], 1)
        self.assertEqual(response.json()["rides"][0]["id"], request_id)

    def test_cancel_unknown_id_is_not_found(self):
        response = self.client.post("/api/passenger/9999/cancel/")
        self.assertEqual(response.status_code, 404)
