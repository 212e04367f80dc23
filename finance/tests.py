"""Finance app tests: money arithmetic and the payment ledger."""

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from clients.models import Customer
from core.exceptions import AuthorizationError, CurrencyMismatchError, InvalidStateError, ValidationError
from finance import services
from finance.models import Payment, PaymentMethod
from finance.money import Money, money_sum, normalize_currency, to_whole_number
from orders.models import Order
from orders.totals import compute_totals


class MoneyTests(SimpleTestCase):
	"""Exact arithmetic, currency discipline and presentation rounding."""

	def test_addition_is_exact(self):
		total = Money.of('0.1', 'usd') + Money.of('0.2', 'USD')
		self.assertEqual(total, Money(Decimal('0.3'), 'USD'))

	def test_mixed_currency_arithmetic_fails(self):
		with self.assertRaises(CurrencyMismatchError):
			Money.of(1, 'USD') + Money.of(1, 'EUR')
		with self.assertRaises(CurrencyMismatchError):
			Money.of(1, 'USD') < Money.of(2, 'GHS')

	def test_quantize_rounds_half_to_even(self):
		self.assertEqual(Money.of('0.125', 'USD').quantize(), Decimal('0.12'))
		self.assertEqual(Money.of('0.135', 'USD').quantize(), Decimal('0.14'))
		self.assertEqual(str(Money.of('325.5', 'USD')), '325.50 USD')

	def test_sum_does_not_round_intermediate_values(self):
		values = [Money.of('0.005', 'USD')] * 3
		self.assertEqual(money_sum(values, 'USD').amount, Decimal('0.015'))

	def test_float_input_uses_its_decimal_text(self):
		self.assertEqual(Money.of(0.1, 'USD').amount, Decimal('0.1'))

	def test_invalid_inputs_raise_validation_error(self):
		for bad in (None, True, 'abc', 'NaN', 'Infinity', ''):
			with self.assertRaises(ValidationError):
				Money.of(bad, 'USD')
		for bad in ('US', 'US1', '', None):
			with self.assertRaises(ValidationError):
				normalize_currency(bad)

	def test_whole_number_rejects_fractions(self):
		self.assertEqual(to_whole_number('200'), 200)
		self.assertEqual(to_whole_number(Decimal('200.00')), 200)
		with self.assertRaises(ValidationError):
			to_whole_number('10.5')

	def test_multiplication_by_quantity(self):
		self.assertEqual((Money.of('150.00', 'USD') * 2).amount, Decimal('300.00'))
		self.assertEqual(-Money.of(5, 'USD'), Money.of(-5, 'USD'))


class PaymentLedgerTests(TestCase):
	"""Service-level behaviour of the append-only ledger."""

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.owner = User.objects.create_user(username='ledger_owner', password='12345678')
		cls.stranger = User.objects.create_user(username='ledger_stranger', password='12345678')
		cls.customer = Customer.objects.create(owner=cls.owner, full_name='Ama Mensah', country_code='GH')
		cls.order = Order.objects.create(owner=cls.owner, customer=cls.customer, currency_code='GHS')

	def test_add_payment_records_entry(self):
		payment = services.add_payment(self.order, actor=self.owner, amount=200, method='cash', note='  deposit ')
		self.assertEqual(payment.amount, 200)
		self.assertEqual(payment.currency_code, 'GHS')
		self.assertEqual(payment.method, PaymentMethod.CASH)
		self.assertEqual(payment.reference, 'deposit')

	def test_integral_strings_are_accepted(self):
		payment = services.add_payment(self.order, actor=self.owner, amount='150', method='card')
		self.assertEqual(payment.amount, 150)

	def test_rejects_non_positive_or_fractional_amounts(self):
		for bad in (0, -5, '10.5', Decimal('0.99'), 10.5, True, None, 'ten'):
			with self.assertRaises(ValidationError):
				services.add_payment(self.order, actor=self.owner, amount=bad, method='cash')
		self.assertEqual(Payment.objects.count(), 0)

	def test_method_must_be_in_closed_set(self):
		with self.assertRaises(ValidationError):
			services.add_payment(self.order, actor=self.owner, amount=10, method='bank')
		payment = services.add_payment(self.order, actor=self.owner, amount=10, method='momo')
		self.assertEqual(payment.method, PaymentMethod.MOBILE_MONEY)
		payment = services.add_payment(self.order, actor=self.owner, amount=10, method='Mobile-Money')
		self.assertEqual(payment.method, PaymentMethod.MOBILE_MONEY)

	def test_currency_mismatch_never_writes(self):
		with self.assertRaises(CurrencyMismatchError):
			services.add_payment(self.order, actor=self.owner, amount=10, method='cash', currency_code='USD')
		self.assertFalse(Payment.objects.exists())

	def test_money_amount_in_other_currency_is_a_mismatch(self):
		with self.assertRaises(CurrencyMismatchError):
			services.add_payment(self.order, actor=self.owner, amount=Money.of(200, 'EUR'), method='cash')
		self.assertFalse(Payment.objects.exists())
		payment = services.add_payment(self.order, actor=self.owner, amount=Money.of(200, 'GHS'), method='cash')
		self.assertEqual(payment.amount, 200)

	def test_amount_must_fit_the_ledger_column(self):
		with self.assertRaises(ValidationError):
			services.add_payment(self.order, actor=self.owner, amount=10 ** 20, method='cash')
		with self.assertRaises(ValidationError):
			services.add_payment(self.order, actor=self.owner, amount='1e100000', method='cash')
		self.assertFalse(Payment.objects.exists())
		payment = services.add_payment(self.order, actor=self.owner, amount=2 ** 63 - 1, method='cash')
		self.assertEqual(payment.amount, 2 ** 63 - 1)

	def test_only_owner_can_record_payments(self):
		with self.assertRaises(AuthorizationError):
			services.add_payment(self.order, actor=self.stranger, amount=10, method='cash')
		self.assertFalse(Payment.objects.exists())

	def test_list_payments_newest_first(self):
		first = services.add_payment(self.order, actor=self.owner, amount=10, method='cash')
		second = services.add_payment(self.order, actor=self.owner, amount=20, method='card')
		self.assertEqual(list(services.list_payments(self.order)), [second, first])

	def test_reversal_is_a_negative_entry(self):
		payment = services.add_payment(self.order, actor=self.owner, amount=120, method='card')
		reversal = services.reverse_payment(self.order, payment.pk, actor=self.owner)
		self.assertEqual(reversal.amount, -120)
		self.assertEqual(reversal.reverses_id, payment.pk)
		self.assertEqual(compute_totals(self.order).paid_total, Money.of(0, 'GHS'))

	def test_payment_can_only_be_reversed_once(self):
		payment = services.add_payment(self.order, actor=self.owner, amount=50, method='cash')
		reversal = services.reverse_payment(self.order, payment.pk, actor=self.owner)
		with self.assertRaises(InvalidStateError):
			services.reverse_payment(self.order, payment.pk, actor=self.owner)
		with self.assertRaises(InvalidStateError):
			services.reverse_payment(self.order, reversal.pk, actor=self.owner)
		self.assertEqual(Payment.objects.filter(order=self.order).count(), 2)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class PaymentAPITests(TestCase):
	"""Payment endpoints nested under an order."""

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.owner = User.objects.create_user(username='api_owner', password='12345678')
		cls.stranger = User.objects.create_user(username='api_stranger', password='12345678')
		cls.customer = Customer.objects.create(owner=cls.owner, full_name='Kofi Boateng', country_code='GH')
		cls.order = Order.objects.create(owner=cls.owner, customer=cls.customer, currency_code='GHS')

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.owner)
		self.url = f'/api/orders/{self.order.id}/payments/'

	def test_create_and_list(self):
		res = self.client.post(self.url, data={'amount': 200, 'method': 'cash', 'reference': 'deposit'}, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['amount'], 200)
		self.assertEqual(res.data['method'], 'cash')

		res2 = self.client.get(self.url)
		self.assertEqual(res2.status_code, 200)
		self.assertEqual(len(res2.data), 1)

	def test_validation_error_is_reported_with_code(self):
		res = self.client.post(self.url, data={'amount': '12.50', 'method': 'cash'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['code'], 'validation_error')
		self.assertIn('amount', res.data['detail'])

	def test_oversized_amount_is_a_validation_error(self):
		res = self.client.post(self.url, data={'amount': str(10 ** 20), 'method': 'cash'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['code'], 'validation_error')

	def test_currency_mismatch_is_reported_distinctly(self):
		res = self.client.post(self.url, data={'amount': 10, 'method': 'cash', 'currency_code': 'USD'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['code'], 'currency_mismatch')

	def test_reverse_endpoint(self):
		payment = services.add_payment(self.order, actor=self.owner, amount=75, method='card')
		res = self.client.post(f'{self.url}{payment.id}/reverse/', data={}, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['amount'], -75)
		res2 = self.client.post(f'{self.url}{payment.id}/reverse/', data={}, format='json')
		self.assertEqual(res2.status_code, 409)
		self.assertEqual(res2.data['code'], 'invalid_state')

	def test_stranger_sees_not_found(self):
		stranger = APIClient()
		stranger.force_authenticate(user=self.stranger)
		res = stranger.post(self.url, data={'amount': 10, 'method': 'cash'}, format='json')
		missing = stranger.post('/api/orders/999999/payments/', data={'amount': 10, 'method': 'cash'}, format='json')
		self.assertEqual(res.status_code, 404)
		self.assertEqual(res.data, missing.data)
		self.assertFalse(Payment.objects.exists())
