import threading
from decimal import Decimal
from unittest.mock import patch

from django.contrib.admin.sites import site
from django.db import DatabaseError, connection
from django.test import RequestFactory, TestCase, TransactionTestCase
from rest_framework.test import APIClient

from accounts.models import User
from services.matching import accept_ride_request, list_open_requests, reject_ride_request
from services.ride_management import (
	ALLOWED_TRANSITIONS,
	ConflictError,
	ForbiddenError,
	InvalidInputError,
	NotFoundError,
	StorageError,
	create_ride_request,
	update_ride_status,
)
from services.ride_management.exceptions import (
	ActiveRideExistsError,
	DriverNotAvailableError,
	DuplicateRejectionError,
	InvalidTransitionError,
	RideNotAvailableError,
	RideNotFoundError,
	RoleNotAllowedError,
)
from .models import Payment, Ride, RideRejection, RideRequest


def make_passenger(username):
	return User.objects.create_user(
		username=username,
		email='%s@example.com' % username,
		password='pass12345',
		role='passenger',
	)


def make_driver(username, is_available=True):
	return User.objects.create_user(
		username=username,
		email='%s@example.com' % username,
		password='driver12345',
		role='driver',
		is_available=is_available,
	)


class MatchingEngineTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger('passenger')
		self.driver_one = make_driver('driver_one')
		self.driver_two = make_driver('driver_two')
		self.ride_request = create_ride_request(
			self.passenger, 'Connaught Place', 'India Gate', 'car', 500
		).ride_request

	def test_open_request_listed_for_available_driver(self):
		listing = list_open_requests(self.driver_one)
		self.assertEqual([r.id for r in listing], [self.ride_request.id])

	def test_listing_is_oldest_first(self):
		other = make_passenger('other')
		later = create_ride_request(other, 'Saket', 'Hauz Khas', 'bike', 120).ride_request

		listing = list_open_requests(self.driver_one)
		self.assertEqual([r.id for r in listing], [self.ride_request.id, later.id])

	def test_accept_converts_request_into_ride(self):
		result = accept_ride_request(self.driver_one, self.ride_request.id)
		ride = result.ride

		self.assertTrue(result.success)
		self.assertEqual(ride.status, Ride.Status.ACCEPTED)
		self.assertTrue(ride.is_active)
		self.assertEqual(ride.driver_id, self.driver_one.id)
		self.assertEqual(ride.passenger_id, self.passenger.id)
		self.assertEqual(ride.pickup_location, 'Connaught Place')
		self.assertEqual(ride.drop_location, 'India Gate')
		self.assertEqual(ride.ride_type, 'car')
		self.assertEqual(ride.payment, Decimal('500'))
		self.assertEqual(ride.created_at, self.ride_request.created_at)

		self.assertFalse(RideRequest.objects.filter(pk=self.ride_request.id).exists())
		self.assertEqual(list_open_requests(self.driver_one), [])
		self.assertEqual(list_open_requests(self.driver_two), [])

	def test_second_accept_on_same_request_is_not_found(self):
		accept_ride_request(self.driver_one, self.ride_request.id)

		with self.assertRaises(RideNotAvailableError) as ctx:
			accept_ride_request(self.driver_two, self.ride_request.id)

		self.assertIsInstance(ctx.exception, NotFoundError)
		self.assertEqual(Ride.objects.count(), 1)

	def test_driver_with_active_ride_cannot_accept_another(self):
		accept_ride_request(self.driver_one, self.ride_request.id)
		other = make_passenger('other')
		second = create_ride_request(other, 'Saket', 'Hauz Khas', 'bike', 120).ride_request

		with self.assertRaises(ActiveRideExistsError) as ctx:
			accept_ride_request(self.driver_one, second.id)

		self.assertIsInstance(ctx.exception, ConflictError)
		self.assertTrue(RideRequest.objects.filter(pk=second.id).exists())

	def test_unavailable_driver_is_forbidden(self):
		offline = make_driver('offline', is_available=False)

		with self.assertRaises(DriverNotAvailableError):
			list_open_requests(offline)
		with self.assertRaises(DriverNotAvailableError):
			accept_ride_request(offline, self.ride_request.id)
		with self.assertRaises(ForbiddenError):
			reject_ride_request(offline, self.ride_request.id)

	def test_availability_is_read_from_database(self):
		# Caller's in-memory copy still says available
		User.objects.filter(pk=self.driver_one.pk).update(is_available=False)

		with self.assertRaises(DriverNotAvailableError):
			accept_ride_request(self.driver_one, self.ride_request.id)

	def test_passenger_cannot_use_matching(self):
		with self.assertRaises(RoleNotAllowedError):
			list_open_requests(self.passenger)
		with self.assertRaises(RoleNotAllowedError):
			accept_ride_request(self.passenger, self.ride_request.id)

	def test_accept_unknown_request_is_not_found(self):
		with self.assertRaises(RideNotAvailableError):
			accept_ride_request(self.driver_one, 9999)

	def test_cancelled_request_cannot_be_accepted(self):
		RideRequest.objects.filter(pk=self.ride_request.id).update(
			status=RideRequest.Status.CANCELLED, is_active=False
		)
		with self.assertRaises(RideNotAvailableError):
			accept_ride_request(self.driver_one, self.ride_request.id)

	def test_reject_hides_request_only_for_rejecting_driver(self):
		result = reject_ride_request(self.driver_one, self.ride_request.id)

		self.assertTrue(result.success)
		self.assertEqual(list_open_requests(self.driver_one), [])
		self.assertEqual([r.id for r in list_open_requests(self.driver_two)], [self.ride_request.id])

		self.ride_request.refresh_from_db()
		self.assertEqual(self.ride_request.status, RideRequest.Status.REQUESTED)
		self.assertTrue(self.ride_request.is_active)

	def test_duplicate_rejection_is_conflict(self):
		reject_ride_request(self.driver_one, self.ride_request.id)

		with self.assertRaises(DuplicateRejectionError) as ctx:
			reject_ride_request(self.driver_one, self.ride_request.id)

		self.assertIsInstance(ctx.exception, ConflictError)
		self.assertEqual(RideRejection.objects.count(), 1)

	def test_reject_unknown_request_is_not_found(self):
		with self.assertRaises(RideNotAvailableError):
			reject_ride_request(self.driver_one, 9999)

	def test_rejection_outlives_accepted_request(self):
		reject_ride_request(self.driver_one, self.ride_request.id)
		accept_ride_request(self.driver_two, self.ride_request.id)

		self.assertTrue(
			RideRejection.objects.filter(ride_request_id=self.ride_request.id, driver=self.driver_one).exists()
		)

	def test_lost_race_rolls_back_new_ride(self):
		real_create = Ride.objects.create

		def another_driver_wins(**kwargs):
			# The request disappears between the lookup and the delete
			RideRequest.objects.filter(pk=self.ride_request.id).delete()
			return real_create(**kwargs)

		with patch.object(Ride.objects, 'create', side_effect=another_driver_wins):
			with self.assertRaises(RideNotAvailableError):
				accept_ride_request(self.driver_one, self.ride_request.id)

		self.assertEqual(Ride.objects.count(), 0)


class RideLifecycleTests(TestCase):
	def setUp(self):
		self.passenger = make_passenger('passenger')
		self.driver = make_driver('driver')
		ride_request = create_ride_request(
			self.passenger, 'Connaught Place', 'India Gate', 'car', 500
		).ride_request
		self.ride = accept_ride_request(self.driver, ride_request.id).ride

	def _balance(self):
		return User.objects.get(pk=self.driver.pk).balance

	def test_transition_table_covers_every_status(self):
		self.assertEqual(set(ALLOWED_TRANSITIONS), set(Ride.Status))
		self.assertEqual(ALLOWED_TRANSITIONS[Ride.Status.COMPLETED], frozenset())
		self.assertEqual(ALLOWED_TRANSITIONS[Ride.Status.CANCELLED], frozenset())

	def test_completion_records_payment_and_credits_driver(self):
		result = update_ride_status(self.driver, self.ride.id, 'completed')

		self.assertEqual(result.ride.status, Ride.Status.COMPLETED)
		self.assertFalse(result.ride.is_active)
		self.assertEqual(result.payment.amount, Decimal('500'))

		payments = Payment.objects.filter(ride=self.ride)
		self.assertEqual(payments.count(), 1)
		self.assertEqual(payments.get().driver_id, self.driver.id)
		self.assertEqual(self._balance(), Decimal('500'))

	def test_start_then_complete(self):
		started = update_ride_status(self.driver, self.ride.id, 'in_progress')
		self.assertEqual(started.ride.status, Ride.Status.IN_PROGRESS)
		self.assertTrue(started.ride.is_active)
		self.assertIsNone(started.payment)

		finished = update_ride_status(self.driver, self.ride.id, 'completed')
		self.assertEqual(finished.ride.status, Ride.Status.COMPLETED)
		self.assertEqual(finished.extra['previous_status'], 'in_progress')
		self.assertEqual(self._balance(), Decimal('500'))

	def test_completed_ride_is_terminal(self):
		update_ride_status(self.driver, self.ride.id, 'completed')

		for target in ('in_progress', 'cancelled', 'completed'):
			with self.assertRaises(InvalidTransitionError):
				update_ride_status(self.driver, self.ride.id, target)

		self.assertEqual(Payment.objects.count(), 1)
		self.assertEqual(self._balance(), Decimal('500'))

	def test_cancelled_ride_is_terminal_and_unpaid(self):
		result = update_ride_status(self.driver, self.ride.id, 'cancelled')
		self.assertEqual(result.ride.status, Ride.Status.CANCELLED)
		self.assertFalse(result.ride.is_active)

		with self.assertRaises(ConflictError):
			update_ride_status(self.driver, self.ride.id, 'completed')

		self.assertEqual(Payment.objects.count(), 0)
		self.assertEqual(self._balance(), Decimal('0'))

	def test_in_progress_cannot_repeat(self):
		update_ride_status(self.driver, self.ride.id, 'in_progress')
		with self.assertRaises(InvalidTransitionError):
			update_ride_status(self.driver, self.ride.id, 'in_progress')

	def test_unknown_or_backward_status_is_invalid_input(self):
		for value in ('accepted', 'done', '', None, ['completed']):
			with self.assertRaises(InvalidInputError):
				update_ride_status(self.driver, self.ride.id, value)

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, Ride.Status.ACCEPTED)

	def test_other_driver_cannot_update(self):
		stranger = make_driver('stranger')
		with self.assertRaises(RideNotFoundError):
			update_ride_status(stranger, self.ride.id, 'in_progress')

	def test_passenger_cannot_update_status(self):
		with self.assertRaises(RoleNotAllowedError):
			update_ride_status(self.passenger, self.ride.id, 'completed')

	def test_unavailable_driver_can_still_finish_ride(self):
		User.objects.filter(pk=self.driver.pk).update(is_available=False)
		self.driver.refresh_from_db()

		result = update_ride_status(self.driver, self.ride.id, 'completed')
		self.assertEqual(result.ride.status, Ride.Status.COMPLETED)

	def test_settlement_failure_rolls_back_completion(self):
		with patch('services.settlement.ledger.Payment.objects.create', side_effect=DatabaseError('disk full')):
			with self.assertRaises(StorageError):
				update_ride_status(self.driver, self.ride.id, 'completed')

		self.ride.refresh_from_db()
		self.assertEqual(self.ride.status, Ride.Status.ACCEPTED)
		self.assertTrue(self.ride.is_active)
		self.assertEqual(Payment.objects.count(), 0)
		self.assertEqual(self._balance(), Decimal('0'))

	def test_driver_free_for_new_ride_after_completion(self):
		update_ride_status(self.driver, self.ride.id, 'completed')

		other = make_passenger('other')
		second = create_ride_request(other, 'Saket', 'Hauz Khas', 'rickshaw', 80).ride_request
		ride = accept_ride_request(self.driver, second.id).ride

		self.assertEqual(ride.status, Ride.Status.ACCEPTED)
		self.assertEqual(Ride.objects.filter(driver=self.driver, is_active=True).count(), 1)


class RideApiFlowTests(TestCase):
	def setUp(self):
		self.client = APIClient()
		self.passenger = make_passenger('passenger')
		self.driver_one = make_driver('driver_one')
		self.driver_two = make_driver('driver_two')

	def _as(self, user):
		self.client.force_authenticate(user=user)
		return self.client

	def _request_ride(self):
		response = self._as(self.passenger).post('/api/passenger/request/', {
			'pickup_location': 'Connaught Place',
			'drop_location': 'India Gate',
			'ride_type': 'car',
			'payment': 500,
		}, format='json')
		self.assertEqual(response.status_code, 201)
		return response.json()['ride_request_id']

	def test_request_accept_complete_flow(self):
		request_id = self._request_ride()

		response = self._as(self.driver_one).get('/api/rides/available/')
		self.assertEqual(response.status_code, 200)
		self.assertIn(request_id, [r['id'] for r in response.json()['ride_requests']])

		response = self._as(self.driver_one).post('/api/rides/%d/accept/' % request_id)
		self.assertEqual(response.status_code, 200)
		ride_id = response.json()['ride_id']
		self.assertEqual(response.json()['ride']['status'], 'accepted')

		response = self._as(self.driver_one).get('/api/rides/available/')
		self.assertEqual(response.json()['count'], 0)

		response = self._as(self.driver_one).post(
			'/api/rides/%d/status/' % ride_id, {'status': 'completed'}, format='json'
		)
		self.assertEqual(response.status_code, 200)
		self.assertEqual(response.json()['ride']['status'], 'completed')
		self.assertFalse(response.json()['ride']['is_active'])
		self.assertEqual(response.json()['amount'], 500)

		response = self._as(self.driver_one).get('/api/driver/balance/')
		self.assertEqual(response.json()['balance'], 500)

	def test_second_accept_returns_not_found(self):
		request_id = self._request_ride()
		self._as(self.driver_one).post('/api/rides/%d/accept/' % request_id)

		response = self._as(self.driver_two).post('/api/rides/%d/accept/' % request_id)
		self.assertEqual(response.status_code, 404)
		self.assertEqual(response.json()['error'], 'ride_not_available')

	def test_reject_then_reject_again(self):
		request_id = self._request_ride()

		response = self._as(self.driver_one).post('/api/rides/%d/reject/' % request_id)
		self.assertEqual(response.status_code, 200)

		response = self._as(self.driver_one).post('/api/rides/%d/reject/' % request_id)
		self.assertEqual(response.status_code, 409)
		self.assertEqual(response.json()['error'], 'already_rejected')

		response = self._as(self.driver_two).get('/api/rides/available/')
		self.assertEqual(response.json()['count'], 1)

	def test_invalid_status_is_bad_request(self):
		request_id = self._request_ride()
		ride_id = self._as(self.driver_one).post('/api/rides/%d/accept/' % request_id).json()['ride_id']

		response = self._as(self.driver_one).post(
			'/api/rides/%d/status/' % ride_id, {'status': 'flying'}, format='json'
		)
		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.json()['error'], 'invalid_status')

	def test_completed_ride_update_is_conflict(self):
		request_id = self._request_ride()
		ride_id = self._as(self.driver_one).post('/api/rides/%d/accept/' % request_id).json()['ride_id']
		self._as(self.driver_one).post('/api/rides/%d/status/' % ride_id, {'status': 'completed'}, format='json')

		response = self._as(self.driver_one).post(
			'/api/rides/%d/status/' % ride_id, {'status': 'cancelled'}, format='json'
		)
		self.assertEqual(response.status_code, 409)

	def test_passenger_cannot_reach_driver_endpoints(self):
		request_id = self._request_ride()

		response = self._as(self.passenger).post('/api/rides/%d/accept/' % request_id)
		self.assertEqual(response.status_code, 403)

		response = self._as(self.passenger).get('/api/rides/available/')
		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.json(), {
			'success': False,
			'error': 'role_not_allowed',
			'message': 'Only drivers can access this endpoint',
		})

	def test_non_object_status_body_is_bad_request(self):
		request_id = self._request_ride()
		ride_id = self._as(self.driver_one).post('/api/rides/%d/accept/' % request_id).json()['ride_id']

		response = self._as(self.driver_one).post('/api/rides/%d/status/' % ride_id, ['completed'], format='json')

		self.assertEqual(response.status_code, 400)
		self.assertEqual(response.json()['error'], 'invalid_body')
		self.assertEqual(Ride.objects.get(pk=ride_id).status, 'accepted')

	def test_unavailable_driver_listing_is_forbidden(self):
		offline = make_driver('offline', is_available=False)
		response = self._as(offline).get('/api/rides/available/')
		self.assertEqual(response.status_code, 403)
		self.assertEqual(response.json()['error'], 'driver_not_available')

	def test_anonymous_request_is_rejected(self):
		response = APIClient().get('/api/rides/available/')
		self.assertEqual(response.status_code, 401)

	def test_storage_failure_maps_to_server_error(self):
		request_id = self._request_ride()
		ride_id = self._as(self.driver_one).post('/api/rides/%d/accept/' % request_id).json()['ride_id']

		with patch('services.settlement.ledger.Payment.objects.create', side_effect=DatabaseError('disk full')):
			response = self._as(self.driver_one).post(
				'/api/rides/%d/status/' % ride_id, {'status': 'completed'}, format='json'
			)

		self.assertEqual(response.status_code, 500)
		self.assertEqual(response.json()['error'], 'storage_error')
		self.assertEqual(Ride.objects.get(pk=ride_id).status, 'accepted')


class RideAdminTests(TestCase):
	def test_ride_tables_are_view_only(self):
		admin_user = User.objects.create_superuser(
			username='admin',
			email='admin@example.com',
			password='admin12345',
			role='passenger',
		)
		request = RequestFactory().get('/admin/')
		request.user = admin_user

		for model in (RideRequest, Ride, RideRejection, Payment):
			model_admin = site._registry[model]
			self.assertTrue(model_admin.has_view_permission(request), model)
			self.assertFalse(model_admin.has_add_permission(request), model)
			self.assertFalse(model_admin.has_change_permission(request), model)
			self.assertFalse(model_admin.has_delete_permission(request), model)


class ConcurrentRequestTests(TransactionTestCase):
	"""Real threads against the file-backed test database."""

	def setUp(self):
		self.passenger = make_passenger('passenger')
		self.driver_one = make_driver('driver_one')
		self.driver_two = make_driver('driver_two')

	def _race(self, *calls):
		barrier = threading.Barrier(len(calls))
		outcomes = []
		outcomes_lock = threading.Lock()

		def run(call):
			try:
				barrier.wait()
				call()
				outcome = 'ok'
			except Exception as exc:
				outcome = type(exc).__name__
			finally:
				connection.close()
			with outcomes_lock:
				outcomes.append(outcome)

		threads = [threading.Thread(target=run, args=(call,)) for call in calls]
		for thread in threads:
			thread.start()
		for thread in threads:
			thread.join(timeout=60)
		return sorted(outcomes)

	def test_two_drivers_accepting_one_request(self):
		ride_request = create_ride_request(self.passenger, 'A', 'B', 'car', 500).ride_request

		outcomes = self._race(
			lambda: accept_ride_request(self.driver_one, ride_request.id),
			lambda: accept_ride_request(self.driver_two, ride_request.id),
		)

		self.assertEqual(outcomes, ['RideNotAvailableError', 'ok'])
		self.assertEqual(Ride.objects.count(), 1)
		self.assertFalse(RideRequest.objects.exists())

	def test_two_requests_from_one_passenger(self):
		outcomes = self._race(
			lambda: create_ride_request(self.passenger, 'A', 'B', 'car', 500),
			lambda: create_ride_request(self.passenger, 'C', 'D', 'bike', 90),
		)

		self.assertEqual(outcomes, ['ActiveRideExistsError', 'ok'])
		self.assertEqual(RideRequest.objects.filter(passenger=self.passenger, is_active=True).count(), 1)
