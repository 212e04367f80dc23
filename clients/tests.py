"""Clients app tests."""

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from clients.models import Customer, Measurement


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CustomerAPITests(TestCase):
	"""Customer CRUD and measurements, scoped to the signed-in owner."""

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.owner = User.objects.create_user(username='tailor_one', password='12345678')
		cls.stranger = User.objects.create_user(username='tailor_two', password='12345678')
		cls.customer = Customer.objects.create(owner=cls.owner, full_name='Jane Doe', country_code='US')

	def setUp(self):
		self.client = APIClient()
		self.client.force_authenticate(user=self.owner)

	def test_create_customer_normalizes_phone(self):
		payload = {
			'full_name': '  John Smith ',
			'phone': '(650) 253-0000',
			'country_code': 'us',
			'email': 'john@example.com',
		}
		res = self.client.post('/api/clients/', data=payload, format='json')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(res.data['full_name'], 'John Smith')
		self.assertEqual(res.data['phone'], '+16502530000')
		self.assertEqual(res.data['country_code'], 'US')
		self.assertEqual(res.data['orders_count'], 0)
		self.assertEqual(Customer.objects.get(pk=res.data['id']).owner, self.owner)

	def test_invalid_phone_is_rejected(self):
		res = self.client.post(
			'/api/clients/',
			data={'full_name': 'John Smith', 'phone': '12345', 'country_code': 'US'},
			format='json',
		)
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['code'], 'validation_error')
		self.assertIn('phone', res.data['detail'])

	def test_foreign_customer_is_not_found(self):
		other = APIClient()
		other.force_authenticate(user=self.stranger)
		res = other.get(f'/api/clients/{self.customer.id}/')
		self.assertEqual(res.status_code, 404)
		self.assertEqual(other.get('/api/clients/').data['count'], 0)

	def test_search(self):
		Customer.objects.create(owner=self.owner, full_name='Kwame Asante', country_code='GH')
		res = self.client.get('/api/clients/', {'search': 'kwame'})
		self.assertEqual(res.data['count'], 1)

	def test_measurements(self):
		url = f'/api/clients/{self.customer.id}/measurements/'
		res = self.client.post(url, data={'name': 'Chest', 'value': '96.50', 'unit': 'cm'}, format='json')
		self.assertEqual(res.status_code, 201)
		measurement_id = res.data['id']

		res2 = self.client.patch(f'{url}{measurement_id}/', data={'value': '98.00'}, format='json')
		self.assertEqual(res2.status_code, 200)
		self.assertEqual(res2.data['value'], '98.00')

		res3 = self.client.get(url)
		self.assertEqual(len(res3.data), 1)

		res4 = self.client.post(url, data={'name': 'Waist', 'value': '-1', 'unit': 'cm'}, format='json')
		self.assertEqual(res4.status_code, 400)

		res5 = self.client.delete(f'{url}{measurement_id}/')
		self.assertEqual(res5.status_code, 204)
		self.assertFalse(Measurement.objects.exists())

	def test_order_for_foreign_customer_is_not_found(self):
		other = APIClient()
		other.force_authenticate(user=self.stranger)
		res = other.post(
			'/api/orders/',
			data={'customer': self.customer.id, 'currency_code': 'USD', 'items': []},
			format='json',
		)
		self.assertEqual(res.status_code, 404)
		self.assertEqual(res.data['code'], 'not_found')
