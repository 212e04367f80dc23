"""Orders app tests: status machine, item ledger, totals and public tracking."""

from decimal import Decimal
from unittest import mock

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.test import RequestFactory, SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from clients.models import Customer
from core.exceptions import (
	AuthorizationError,
	CurrencyMismatchError,
	InvalidStateError,
	InvalidTransitionError,
	NotFoundError,
	StorageFailure,
	ValidationError,
)
from finance import services as finance_services
from finance.money import Money
from orders import services
from orders.admin import OrderAdmin, OrderAdminForm, OrderItemAdminForm
from orders.models import Order, OrderItem, TrackingToken
from orders.status import OrderStatus, allowed_targets, can_transition, ensure_transition, is_terminal
from orders.totals import compute_totals
from orders.tracking import issue_or_retrieve_token, resolve


class StatusMachineTests(SimpleTestCase):
	"""The transition table is closed: anything not listed is rejected."""

	LEGAL = {
		('pending', 'confirmed'),
		('pending', 'cancelled'),
		('confirmed', 'active'),
		('confirmed', 'cancelled'),
		('active', 'in_production'),
		('active', 'cancelled'),
		('in_production', 'ready'),
		('in_production', 'cancelled'),
		('ready', 'delivered'),
		('ready', 'cancelled'),
	}

	def test_full_transition_table(self):
		for current in OrderStatus.values:
			for target in OrderStatus.values:
				expected = (current, target) in self.LEGAL
				self.assertEqual(can_transition(current, target), expected, f'{current} -> {target}')
				if not expected:
					with self.assertRaises(InvalidTransitionError):
						ensure_transition(current, target)

	def test_terminal_states_have_no_successors(self):
		self.assertTrue(is_terminal('delivered'))
		self.assertTrue(is_terminal(OrderStatus.CANCELLED))
		self.assertFalse(is_terminal('ready'))
		self.assertEqual(allowed_targets('delivered'), frozenset())
		self.assertEqual(allowed_targets('cancelled'), frozenset())

	def test_unknown_status_is_rejected(self):
		with self.assertRaises(InvalidTransitionError):
			ensure_transition('pending', 'shipped')
		self.assertEqual(ensure_transition('pending', ' Confirmed '), OrderStatus.CONFIRMED)


class OrderTestMixin:

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.owner = User.objects.create_user(username='tailor', password='12345678')
		cls.stranger = User.objects.create_user(username='other_tailor', password='12345678')
		cls.customer = Customer.objects.create(
			owner=cls.owner,
			full_name='Ama Mensah',
			phone='+233201234567',
			email='ama@example.com',
			country_code='GH',
		)

	def make_order(self, **kwargs):
		kwargs.setdefault('currency_code', 'GHS')
		kwargs.setdefault('items', [
			{'description': 'Suit', 'quantity': 2, 'unit_price': '150.00'},
			{'description': 'Alterations', 'quantity': 1, 'unit_price': '25.50'},
		])
		return services.create_order(actor=self.owner, customer=self.customer, **kwargs)

	def move_to(self, order, *statuses):
		for status in statuses:
			services.set_status(order, status, actor=self.owner)
		return order


class OrderLedgerTests(OrderTestMixin, TestCase):

	def test_create_order_starts_pending(self):
		order = self.make_order(code='A-1', notes='Rush job')
		self.assertEqual(order.status, OrderStatus.PENDING)
		self.assertEqual(order.items.count(), 2)
		self.assertEqual(set(order.items.values_list('currency_code', flat=True)), {'GHS'})

	def test_create_order_for_foreign_customer_is_rejected(self):
		with self.assertRaises(AuthorizationError):
			services.create_order(actor=self.stranger, customer=self.customer, currency_code='GHS')
		self.assertFalse(Order.objects.exists())

	def test_invalid_item_aborts_whole_order(self):
		with self.assertRaises(ValidationError):
			self.make_order(items=[
				{'description': 'Suit', 'quantity': 1, 'unit_price': '150.00'},
				{'description': 'Shirt', 'quantity': 0, 'unit_price': '20.00'},
			])
		self.assertFalse(Order.objects.exists())

	def test_item_validation(self):
		order = self.make_order(items=[])
		bad_items = [
			{'description': '   ', 'quantity': 1, 'unit_price': '1.00'},
			{'description': 'x' * 256, 'quantity': 1, 'unit_price': '1.00'},
			{'description': 'Shirt', 'quantity': 1.5, 'unit_price': '1.00'},
			{'description': 'Shirt', 'quantity': -1, 'unit_price': '1.00'},
			{'description': 'Shirt', 'quantity': 1, 'unit_price': '-1.00'},
			{'description': 'Shirt', 'quantity': 1, 'unit_price': '1.001'},
			{'description': 'Shirt', 'quantity': 1, 'unit_price': 'abc'},
		]
		for item in bad_items:
			with self.assertRaises(ValidationError):
				services.add_item(order, actor=self.owner, **item)
		self.assertEqual(order.items.count(), 0)

	def test_values_must_fit_their_columns(self):
		order = self.make_order(items=[])
		bad_items = [
			{'description': 'Shirt', 'quantity': 10 ** 20, 'unit_price': '1.00'},
			{'description': 'Shirt', 'quantity': 2147483648, 'unit_price': '1.00'},
			{'description': 'Shirt', 'quantity': 1, 'unit_price': '10000000000000'},
			{'description': 'Shirt', 'quantity': 1, 'unit_price': '10000000000.00'},
			{'description': 'Shirt', 'quantity': 1, 'unit_price': '1e100000'},
		]
		for item in bad_items:
			with self.assertRaises(ValidationError):
				services.add_item(order, actor=self.owner, **item)
		self.assertEqual(order.items.count(), 0)

		item = services.add_item(order, actor=self.owner, description='Bolt', quantity=2147483647, unit_price='9999999999.99')
		self.assertEqual(item.quantity, 2147483647)
		with self.assertRaises(ValidationError):
			services.update_adjustments(order, actor=self.owner, discount='10000000000')

	def test_add_update_remove_item(self):
		order = self.make_order(items=[])
		item = services.add_item(order, actor=self.owner, description=' Kaftan ', quantity=1, unit_price='80.00')
		self.assertEqual(item.description, 'Kaftan')

		updated = services.update_item(order, item.pk, actor=self.owner, quantity=3)
		self.assertEqual(updated.quantity, 3)
		self.assertEqual(updated.unit_price, Decimal('80.00'))

		services.remove_item(order, item.pk, actor=self.owner)
		self.assertFalse(OrderItem.objects.filter(pk=item.pk).exists())

		with self.assertRaises(NotFoundError):
			services.remove_item(order, item.pk, actor=self.owner)

	def test_list_items_in_insertion_order(self):
		order = self.make_order()
		self.assertEqual([i.description for i in services.list_items(order)], ['Suit', 'Alterations'])

	def test_item_currency_mismatch_never_mutates(self):
		order = self.make_order()
		with self.assertRaises(CurrencyMismatchError):
			services.add_item(order, actor=self.owner, description='Tie', quantity=1, unit_price='5.00', currency_code='USD')
		with self.assertRaises(CurrencyMismatchError):
			services.add_item(order, actor=self.owner, description='Tie', quantity=1, unit_price=Money.of('5.00', 'USD'))
		self.assertEqual(order.items.count(), 2)

	def test_terminal_order_blocks_item_changes(self):
		order = self.make_order()
		item = order.items.first()
		services.set_status(order, 'cancelled', actor=self.owner)
		with self.assertRaises(InvalidStateError):
			services.add_item(order, actor=self.owner, description='Tie', quantity=1, unit_price='5.00')
		with self.assertRaises(InvalidStateError):
			services.update_item(order, item.pk, actor=self.owner, quantity=5)
		with self.assertRaises(InvalidStateError):
			services.remove_item(order, item.pk, actor=self.owner)
		with self.assertRaises(InvalidStateError):
			services.set_ready_at(order, '2030-01-01T10:00:00Z', actor=self.owner)
		with self.assertRaises(InvalidStateError):
			services.update_adjustments(order, actor=self.owner, tax='1.00')
		item.refresh_from_db()
		self.assertEqual(item.quantity, 2)

	def test_non_owner_cannot_edit(self):
		order = self.make_order()
		with self.assertRaises(AuthorizationError):
			services.add_item(order, actor=self.stranger, description='Tie', quantity=1, unit_price='5.00')
		with self.assertRaises(AuthorizationError):
			services.set_status(order, 'confirmed', actor=self.stranger)
		order.refresh_from_db()
		self.assertEqual(order.status, OrderStatus.PENDING)

	def test_get_order_for_hides_foreign_orders(self):
		order = self.make_order()
		self.assertEqual(services.get_order_for(self.owner, order.pk), order)
		with self.assertRaises(NotFoundError):
			services.get_order_for(self.stranger, order.pk)
		with self.assertRaises(NotFoundError):
			services.get_order_for(self.owner, 999999)


class StatusServiceTests(OrderTestMixin, TestCase):

	def test_happy_path_stamps_delivery(self):
		order = self.make_order()
		self.move_to(order, 'confirmed', 'active', 'in_production', 'ready', 'delivered')
		order.refresh_from_db()
		self.assertEqual(order.status, OrderStatus.DELIVERED)
		self.assertIsNotNone(order.delivered_at)
		self.assertIsNone(order.cancelled_at)

	def test_illegal_transition_leaves_status_unchanged(self):
		order = self.make_order()
		self.move_to(order, 'confirmed', 'active', 'in_production', 'ready')
		with self.assertRaises(InvalidTransitionError):
			services.set_status(order, 'pending', actor=self.owner)
		self.assertEqual(order.status, OrderStatus.READY)
		order.refresh_from_db()
		self.assertEqual(order.status, OrderStatus.READY)

	def test_cancelled_is_final(self):
		order = self.make_order()
		services.set_status(order, 'cancelled', actor=self.owner)
		self.assertIsNotNone(order.cancelled_at)
		for target in ('pending', 'confirmed', 'cancelled'):
			with self.assertRaises(InvalidTransitionError):
				services.set_status(order, target, actor=self.owner)

	def test_ready_at_can_be_set_and_cleared(self):
		order = self.make_order()
		services.set_ready_at(order, '2030-05-01T10:00:00Z', actor=self.owner)
		order.refresh_from_db()
		self.assertEqual(order.ready_at.year, 2030)
		services.set_ready_at(order, None, actor=self.owner)
		order.refresh_from_db()
		self.assertIsNone(order.ready_at)
		with self.assertRaises(ValidationError):
			services.set_ready_at(order, 'next tuesday', actor=self.owner)

	def test_adjustments(self):
		order = self.make_order()
		services.update_adjustments(order, actor=self.owner, discount='20.00', tax=None)
		order.refresh_from_db()
		self.assertEqual(order.discount, Decimal('20.00'))
		self.assertIsNone(order.tax)
		services.update_adjustments(order, actor=self.owner, discount='')
		order.refresh_from_db()
		self.assertIsNone(order.discount)
		with self.assertRaises(ValidationError):
			services.update_adjustments(order, actor=self.owner, tip='5.00')
		with self.assertRaises(ValidationError):
			services.update_adjustments(order, actor=self.owner, shipping='-5.00')


class TotalsTests(OrderTestMixin, TestCase):

	def test_subtotal(self):
		totals = compute_totals(self.make_order())
		self.assertEqual(totals.subtotal, Money.of('325.50', 'GHS'))

	def test_subtotal_does_not_depend_on_item_order(self):
		items = [
			{'description': 'Suit', 'quantity': 2, 'unit_price': '150.00'},
			{'description': 'Alterations', 'quantity': 1, 'unit_price': '25.50'},
			{'description': 'Buttons', 'quantity': 12, 'unit_price': '0.35'},
		]
		forward = self.make_order(items=[])
		backward = self.make_order(items=[])
		for item in items:
			services.add_item(forward, actor=self.owner, **item)
		for item in reversed(items):
			services.add_item(backward, actor=self.owner, **item)
		self.assertEqual(compute_totals(forward).subtotal, compute_totals(backward).subtotal)
		self.assertEqual(compute_totals(forward).subtotal, Money.of('329.70', 'GHS'))

	def test_balance_after_discount_and_payment(self):
		order = self.make_order(discount='20.00')
		finance_services.add_payment(order, actor=self.owner, amount=200, method='cash')
		totals = compute_totals(order)
		self.assertEqual(totals.computed_total, Money.of('305.50', 'GHS'))
		self.assertEqual(totals.paid_total, Money.of('200', 'GHS'))
		self.assertEqual(totals.balance, Money.of('105.50', 'GHS'))
		self.assertEqual(totals.as_dict()['balance'], '105.50')

	def test_totals_follow_item_edits(self):
		order = self.make_order()
		services.add_item(order, actor=self.owner, description='Tie', quantity=1, unit_price='4.50')
		self.assertEqual(compute_totals(order).subtotal, Money.of('330.00', 'GHS'))

	def test_overpayment_gives_negative_balance(self):
		order = self.make_order()
		finance_services.add_payment(order, actor=self.owner, amount=400, method='card')
		self.assertEqual(compute_totals(order).balance, Money.of('-74.50', 'GHS'))

	def test_discount_larger_than_total_is_floored_for_display_only(self):
		order = self.make_order(discount='400.00')
		totals = compute_totals(order)
		self.assertEqual(totals.computed_total, Money.of('-74.50', 'GHS'))
		self.assertEqual(totals.display_total, Money.zero('GHS'))
		self.assertEqual(totals.as_dict()['display_total'], '0.00')

	def test_corrupted_row_currency_fails_loudly(self):
		order = self.make_order()
		OrderItem.objects.create(order=order, description='Stray', quantity=1, unit_price='1.00', currency_code='USD')
		with self.assertRaises(CurrencyMismatchError):
			compute_totals(order)

	def test_empty_order(self):
		totals = compute_totals(self.make_order(items=[]))
		self.assertEqual(totals.computed_total, Money.zero('GHS'))
		self.assertEqual(totals.balance, Money.zero('GHS'))


class TrackingTests(OrderTestMixin, TestCase):

	def test_token_is_issued_once(self):
		order = self.make_order()
		first = issue_or_retrieve_token(order, actor=self.owner)
		second = issue_or_retrieve_token(order, actor=self.owner)
		self.assertEqual(first, second)
		self.assertEqual(len(first), 40)
		self.assertEqual(TrackingToken.objects.filter(order=order).count(), 1)

	def test_only_owner_can_share(self):
		order = self.make_order()
		with self.assertRaises(AuthorizationError):
			issue_or_retrieve_token(order, actor=self.stranger)
		self.assertFalse(TrackingToken.objects.exists())

	def test_race_loser_returns_winner_token(self):
		order = self.make_order()
		TrackingToken.objects.create(order=order, token='winnertoken')
		with mock.patch('orders.tracking._existing_token', side_effect=[None, 'winnertoken']):
			token = issue_or_retrieve_token(order, actor=self.owner)
		self.assertEqual(token, 'winnertoken')
		self.assertEqual(TrackingToken.objects.filter(order=order).count(), 1)

	def test_resolve_returns_public_view(self):
		order = self.make_order(notes='Customer owes from last year')
		finance_services.add_payment(order, actor=self.owner, amount=200, method='momo')
		TrackingToken.objects.create(order=order, token='abc123')

		view = resolve('abc123')
		self.assertEqual(view.customer_name, 'Ama')
		self.assertEqual([i.description for i in view.items], ['Suit', 'Alterations'])
		self.assertEqual(view.totals, compute_totals(order))
		self.assertEqual(view.payments[0].method, 'mobile_money')
		self.assertFalse(hasattr(view, 'notes'))
		self.assertNotIn('Customer owes', repr(view))
		self.assertNotIn('ama@example.com', repr(view))

	def test_unknown_and_deleted_tokens_fail_identically(self):
		gone = self.make_order()
		TrackingToken.objects.create(order=gone, token='formertoken')
		gone.delete()

		with self.assertRaises(NotFoundError) as wrong:
			resolve('wrong-token')
		with self.assertRaises(NotFoundError) as deleted:
			resolve('formertoken')
		with self.assertRaises(NotFoundError) as malformed:
			resolve('../etc/passwd')
		self.assertEqual(str(wrong.exception.detail), str(deleted.exception.detail))
		self.assertEqual(str(wrong.exception.detail), str(malformed.exception.detail))


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderAPITests(OrderTestMixin, TestCase):
	"""HTTP surface of the orders app."""

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.owner)

	def test_create_order_with_items(self):
		payload = {
			'customer': self.customer.id,
			'currency_code': 'ghs',
			'code': 'A-17',
			'items': [
				{'description': 'Suit', 'quantity': 2, 'unit_price': '150.00'},
				{'description': 'Alterations', 'quantity': 1, 'unit_price': '25.50'},
			],
		}
		res = self.client.post('/api/orders/', data=payload, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['status'], 'pending')
		self.assertEqual(res.data['currency_code'], 'GHS')
		self.assertEqual(res.data['totals']['subtotal'], '325.50')
		self.assertEqual(res.data['next_statuses'], ['cancelled', 'confirmed'])
		self.assertEqual(len(res.data['items']), 2)

	def test_list_is_scoped_to_owner(self):
		self.make_order()
		res = self.client.get('/api/orders/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['count'], 1)

		other = APIClient()
		other.force_authenticate(user=self.stranger)
		res2 = other.get('/api/orders/')
		self.assertEqual(res2.data['count'], 0)

	def test_foreign_order_looks_missing(self):
		order = self.make_order()
		other = APIClient()
		other.force_authenticate(user=self.stranger)
		res = other.get(f'/api/orders/{order.id}/')
		missing = other.get('/api/orders/999999/')
		self.assertEqual(res.status_code, 404)
		self.assertEqual(res.data, missing.data)
		self.assertEqual(res.data['code'], 'not_found')

	def test_requires_authentication(self):
		res = APIClient().get('/api/orders/')
		self.assertIn(res.status_code, (401, 403))

	def test_set_status_endpoint(self):
		order = self.make_order()
		res = self.client.patch(f'/api/orders/{order.id}/set-status/', data={'status': 'confirmed'}, format='json')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['status'], 'confirmed')

		res2 = self.client.patch(f'/api/orders/{order.id}/set-status/', data={'status': 'pending'}, format='json')
		self.assertEqual(res2.status_code, 409)
		self.assertEqual(res2.data['code'], 'invalid_transition')

	def test_item_endpoints(self):
		order = self.make_order(items=[])
		res = self.client.post(
			f'/api/orders/{order.id}/items/',
			data={'description': 'Kaftan', 'quantity': 1, 'unit_price': '80.00'},
			format='json',
		)
		self.assertEqual(res.status_code, 201)
		item_id = res.data['id']

		res2 = self.client.patch(f'/api/orders/{order.id}/items/{item_id}/', data={'quantity': 2}, format='json')
		self.assertEqual(res2.status_code, 200)
		self.assertEqual(res2.data['line_total'], '160.00')

		res3 = self.client.delete(f'/api/orders/{order.id}/items/{item_id}/')
		self.assertEqual(res3.status_code, 204)

		res4 = self.client.post(f'/api/orders/{order.id}/items/', data={'description': '', 'quantity': 1, 'unit_price': '1'}, format='json')
		self.assertEqual(res4.status_code, 400)
		self.assertEqual(res4.data['code'], 'validation_error')

	def test_totals_endpoint(self):
		order = self.make_order(discount='20.00')
		finance_services.add_payment(order, actor=self.owner, amount=200, method='cash')
		res = self.client.get(f'/api/orders/{order.id}/totals/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['computed_total'], '305.50')
		self.assertEqual(res.data['balance'], '105.50')

	def test_statuses_endpoint(self):
		res = self.client.get('/api/orders/statuses/')
		self.assertEqual(res.status_code, 200)
		by_value = {row['value']: row['next'] for row in res.data}
		self.assertEqual(by_value['ready'], ['cancelled', 'delivered'])
		self.assertEqual(by_value['delivered'], [])

	def test_share_and_public_tracking(self):
		order = self.make_order(notes='internal only')
		res = self.client.post(f'/api/orders/{order.id}/share/', format='json')
		self.assertEqual(res.status_code, 200)
		token = res.data['token']
		self.assertTrue(res.data['url'].endswith(f'/track/{token}/'))

		again = self.client.post(f'/api/orders/{order.id}/share/', format='json')
		self.assertEqual(again.data['token'], token)

		public = APIClient()
		page = public.get(f'/track/{token}/')
		self.assertEqual(page.status_code, 200)
		self.assertEqual(page.data['totals']['subtotal'], '325.50')
		self.assertEqual(page.data['customer_name'], 'Ama')
		self.assertNotIn('notes', page.data)
		self.assertNotIn('internal only', str(page.data))

	def test_public_tracking_misses_are_uniform(self):
		public = APIClient()
		wrong = public.get('/track/wrong-token/')
		malformed = public.get('/track/not%20a%20token/')
		self.assertEqual(wrong.status_code, 404)
		self.assertEqual(malformed.status_code, 404)
		self.assertEqual(wrong.data, malformed.data)

	def test_orders_cannot_be_deleted(self):
		order = self.make_order()
		res = self.client.delete(f'/api/orders/{order.id}/')
		self.assertEqual(res.status_code, 405)
		self.assertTrue(Order.objects.filter(pk=order.pk).exists())

	def test_public_tracking_hides_stored_row_problems(self):
		order = self.make_order()
		OrderItem.objects.create(order=order, description='Broken', quantity=0, unit_price='1.00', currency_code='GHS')
		TrackingToken.objects.create(order=order, token='brokenrows')
		res = APIClient().get('/track/brokenrows/')
		self.assertEqual(res.status_code, 503)
		self.assertEqual(res.data['code'], 'storage_failure')
		self.assertNotIn('quantity', str(res.data))


class PublicViewIntegrityTests(OrderTestMixin, TestCase):

	def test_corrupt_rows_raise_generic_failure(self):
		order = self.make_order()
		OrderItem.objects.create(order=order, description='Broken', quantity=0, unit_price='1.00', currency_code='GHS')
		TrackingToken.objects.create(order=order, token='corrupt1')
		with self.assertRaises(StorageFailure) as ctx:
			resolve('corrupt1')
		self.assertNotIn('Stored item', str(ctx.exception.detail))

	def test_foreign_currency_row_raises_generic_failure(self):
		order = self.make_order()
		OrderItem.objects.create(order=order, description='Stray', quantity=1, unit_price='1.00', currency_code='USD')
		TrackingToken.objects.create(order=order, token='corrupt2')
		with self.assertRaises(StorageFailure):
			resolve('corrupt2')


class OrderAdminValidationTests(OrderTestMixin, TestCase):
	"""Admin forms apply the same rules as the service layer."""

	def item_form(self, order, **data):
		return OrderItemAdminForm(data=data, instance=OrderItem(order=order, currency_code=order.currency_code))

	def test_item_form_rejects_invalid_rows(self):
		order = self.make_order(items=[])
		self.assertFalse(self.item_form(order, description='Shirt', quantity='0', unit_price='10.00').is_valid())
		self.assertFalse(self.item_form(order, description='Shirt', quantity='1', unit_price='-1.00').is_valid())
		self.assertFalse(self.item_form(order, description='   ', quantity='1', unit_price='1.00').is_valid())
		form = self.item_form(order, description=' Shirt ', quantity='2', unit_price='10.00')
		self.assertTrue(form.is_valid(), form.errors)
		self.assertEqual(form.cleaned_data['description'], 'Shirt')

	def test_order_form_rejects_negative_adjustments(self):
		order = self.make_order()
		form = OrderAdminForm(data={'tax': '-5.00', 'discount': '1.00'}, instance=order)
		self.assertFalse(form.is_valid())
		self.assertIn('tax', form.errors)
		self.assertNotIn('discount', form.errors)

	def test_final_orders_lock_adjustments(self):
		model_admin = OrderAdmin(Order, admin.site)
		request = RequestFactory().get('/admin/orders/order/')
		order = self.make_order()
		self.assertNotIn('tax', model_admin.get_readonly_fields(request, order))
		services.set_status(order, 'cancelled', actor=self.owner)
		locked = model_admin.get_readonly_fields(request, order)
		for field in ('tax', 'discount', 'shipping', 'ready_at'):
			self.assertIn(field, locked)
