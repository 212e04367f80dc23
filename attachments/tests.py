"""Attachments app tests: storage, signed links and the download endpoint."""

import shutil
import tempfile
import time
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.test import APIClient

from attachments import services
from attachments.gateway import AttachmentGateway
from attachments.models import Attachment, AttachmentKind
from clients.models import Customer
from core.exceptions import AuthorizationError, NotFoundError, ValidationError
from orders.models import Order, TrackingToken
from orders.tracking import resolve

MEDIA_ROOT = tempfile.mkdtemp(prefix='attachments-tests-')


def photo(name='front.png', content=b'\x89PNG fake image bytes'):
	return SimpleUploadedFile(name, content, content_type='image/png')


class ClassifyTests(SimpleTestCase):

	def test_kinds(self):
		self.assertEqual(services.classify('image/jpeg'), AttachmentKind.IMAGE)
		self.assertEqual(services.classify('application/pdf'), AttachmentKind.DOCUMENT)
		self.assertEqual(services.classify('text/plain; charset=utf-8'), AttachmentKind.DOCUMENT)
		self.assertEqual(services.classify('application/zip'), AttachmentKind.OTHER)
		self.assertEqual(services.classify(''), AttachmentKind.OTHER)


@override_settings(MEDIA_ROOT=MEDIA_ROOT, ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class AttachmentTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.owner = User.objects.create_user(username='att_owner', password='12345678')
		cls.stranger = User.objects.create_user(username='att_stranger', password='12345678')
		cls.customer = Customer.objects.create(owner=cls.owner, full_name='Esi Owusu', country_code='GH')
		cls.order = Order.objects.create(owner=cls.owner, customer=cls.customer, currency_code='GHS')

	@classmethod
	def tearDownClass(cls):
		super().tearDownClass()
		shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

	def setUp(self):
		self.gateway = AttachmentGateway(ttl=60, max_ttl=120)

	def upload(self, **kwargs):
		return services.upload_attachment(self.order, actor=self.owner, uploaded_file=photo(**kwargs), caption=' Front view ')

	def test_upload_records_kind_and_location(self):
		attachment = self.upload()
		self.assertEqual(attachment.kind, AttachmentKind.IMAGE)
		self.assertEqual(attachment.content_type, 'image/png')
		self.assertEqual(attachment.caption, 'Front view')
		self.assertTrue(attachment.file.name.startswith(f'orders/{self.order.id}/'))
		self.assertTrue(attachment.file.name.endswith('.png'))
		self.assertTrue(attachment.file.storage.exists(attachment.file.name))

	def test_upload_requires_file_and_owner(self):
		with self.assertRaises(ValidationError):
			services.upload_attachment(self.order, actor=self.owner, uploaded_file=None)
		with self.assertRaises(AuthorizationError):
			services.upload_attachment(self.order, actor=self.stranger, uploaded_file=photo())
		self.assertFalse(Attachment.objects.exists())

	def test_signed_url_round_trip(self):
		attachment = self.upload()
		url = self.gateway.signed_url(attachment)
		self.assertTrue(url.startswith('/files/'))
		self.assertNotIn(attachment.file.name, url)
		signed = url.rstrip('/').rsplit('/', 1)[-1]
		self.assertEqual(self.gateway.verify(signed), attachment)

	def test_expired_link_is_rejected(self):
		attachment = self.upload()
		signed = self.gateway.signed_url(attachment).rstrip('/').rsplit('/', 1)[-1]
		with mock.patch('attachments.gateway.time') as clock:
			clock.time.return_value = time.time() + 3600
			with self.assertRaises(NotFoundError):
				self.gateway.verify(signed)

	def test_ttl_is_capped(self):
		attachment = self.upload()
		signed = self.gateway.signed_url(attachment, ttl_seconds=10_000).rstrip('/').rsplit('/', 1)[-1]
		with mock.patch('attachments.gateway.time') as clock:
			clock.time.return_value = time.time() + 121
			with self.assertRaises(NotFoundError):
				self.gateway.verify(signed)

	def test_tampered_link_is_rejected(self):
		attachment = self.upload()
		signed = self.gateway.signed_url(attachment).rstrip('/').rsplit('/', 1)[-1]
		with self.assertRaises(NotFoundError):
			self.gateway.verify(signed[:-2] + ('AA' if not signed.endswith('AA') else 'BB'))
		with self.assertRaises(NotFoundError):
			self.gateway.verify('garbage')

	def test_missing_object_yields_no_url(self):
		attachment = self.upload()
		attachment.file.storage.delete(attachment.file.name)
		self.assertIsNone(self.gateway.signed_url(attachment))

	def test_storage_error_yields_no_url(self):
		attachment = self.upload()
		broken = mock.Mock()
		broken.exists.side_effect = OSError('backend unavailable')
		self.assertIsNone(AttachmentGateway(storage=broken).signed_url(attachment))

	def test_deleting_attachment_removes_stored_file(self):
		attachment = self.upload()
		name = attachment.file.name
		storage = attachment.file.storage
		services.delete_attachment(self.order, attachment.pk, actor=self.owner)
		self.assertFalse(Attachment.objects.exists())
		self.assertFalse(storage.exists(name))
		with self.assertRaises(NotFoundError):
			services.delete_attachment(self.order, attachment.pk, actor=self.owner)

	def test_public_view_exposes_links_not_paths(self):
		attachment = self.upload()
		TrackingToken.objects.create(order=self.order, token='abc123')
		view = resolve('abc123')
		self.assertEqual(len(view.attachments), 1)
		self.assertEqual(view.attachments[0].kind, 'image')
		self.assertIsNotNone(view.attachments[0].url)
		self.assertNotIn(attachment.file.name, repr(view))

	def test_api_upload_list_download_delete(self):
		client = APIClient()
		client.force_authenticate(user=self.owner)
		base = f'/api/orders/{self.order.id}/attachments/'

		res = client.post(base, data={'file': photo(), 'caption': 'Sketch'}, format='multipart')
		self.assertEqual(res.status_code, 201)
		self.assertEqual(len(res.data), 1)
		self.assertNotIn('file', res.data[0])
		attachment_id = res.data[0]['id']

		listing = client.get(base)
		self.assertEqual(listing.status_code, 200)
		url = listing.data[0]['url']
		self.assertIsNotNone(url)

		download = APIClient().get(url)
		self.assertEqual(download.status_code, 200)
		self.assertEqual(b''.join(download.streaming_content), b'\x89PNG fake image bytes')
		self.assertEqual(download['Cache-Control'], 'private, no-store')
		download.close()

		gone = client.delete(f'{base}{attachment_id}/')
		self.assertEqual(gone.status_code, 204)
		self.assertEqual(APIClient().get(url).status_code, 404)

	def test_api_hides_foreign_orders(self):
		other = APIClient()
		other.force_authenticate(user=self.stranger)
		res = other.post(f'/api/orders/{self.order.id}/attachments/', data={'file': photo()}, format='multipart')
		self.assertEqual(res.status_code, 404)
		self.assertFalse(Attachment.objects.exists())
