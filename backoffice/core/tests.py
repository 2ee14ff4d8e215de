"""
Test suite for the core module
Tests: document numbering, audit logging, form drafts and authentication
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from backoffice.core.models import AuditLog, FormDraft
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import (
    SALE_PREFIX, REPAIR_PREFIX, create_audit_log, discard_draft, next_document_number, to_money
)


class DocumentNumberTests(TestCase):
    """Test PREFIX-YYYYMMDD-NNNN numbering"""

    def test_first_number_of_the_day(self):
        """Test the counter starts at 0001"""
        self.assertEqual(next_document_number(SALE_PREFIX, day=date(2025, 3, 7)), 'LTN-BH-20250307-0001')

    def test_numbers_increase_per_prefix_and_day(self):
        """Test each prefix and day keeps its own counter"""
        day = date(2025, 3, 7)
        next_document_number(SALE_PREFIX, day=day)
        self.assertEqual(next_document_number(SALE_PREFIX, day=day), 'LTN-BH-20250307-0002')
        self.assertEqual(next_document_number(REPAIR_PREFIX, day=day), 'LTN-SC-20250307-0001')
        self.assertEqual(next_document_number(SALE_PREFIX, day=date(2025, 3, 8)), 'LTN-BH-20250308-0001')


class UtilsTests(TestCase):
    """Test small shared helpers"""

    def test_to_money(self):
        """Test request values are parsed into Decimals"""
        self.assertEqual(to_money('1500.50'), Decimal('1500.50'))
        self.assertEqual(to_money(None), Decimal('0'))
        self.assertEqual(to_money('', default='7'), Decimal('7'))
        with self.assertRaises(ValueError):
            to_money('abc')

    def test_create_audit_log_requires_fields(self):
        """Test an incomplete audit entry is skipped instead of raising"""
        self.assertIsNone(create_audit_log(action='create', model_name='Sale'))
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_create_audit_log(self):
        """Test an audit entry records user and reference"""
        user = TestDataFactory.create_user()
        log = create_audit_log(
            user=user, action='sale_create', model_name='Sale', object_id=5,
            object_reference='LTN-BH-20250101-0001', changes={'total': '100'}
        )
        self.assertEqual(log.user, user)
        self.assertEqual(log.object_id, '5')
        self.assertEqual(log.changes, {'total': '100'})

    def test_discard_draft(self):
        """Test only the given user's draft for that form is removed"""
        user = TestDataFactory.create_user()
        other = TestDataFactory.create_user()
        FormDraft.objects.create(user=user, form_key='goods_receipt', payload={'a': 1})
        FormDraft.objects.create(user=user, form_key='repair_order', payload={'b': 2})
        FormDraft.objects.create(user=other, form_key='goods_receipt', payload={'c': 3})

        self.assertEqual(discard_draft(user, 'goods_receipt'), 1)
        self.assertFalse(FormDraft.objects.filter(user=user, form_key='goods_receipt').exists())
        self.assertEqual(FormDraft.objects.count(), 2)


class FormDraftAPITests(TestCase):
    """Test autosaved form drafts"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_missing_draft(self):
        """Test loading a draft that was never saved"""
        response = self.client.get('/api/v1/drafts/goods_receipt/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_save_load_and_discard_draft(self):
        """Test a draft can be saved twice, loaded and deleted"""
        url = '/api/v1/drafts/repair_order/'
        response = self.client.put(url, {'payload': {'customer_name': 'An'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        response = self.client.put(url, {'payload': {'customer_name': 'Bình'}}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(FormDraft.objects.filter(user=self.user).count(), 1)

        response = self.client.get(url)
        self.assertEqual(response.data['payload'], {'customer_name': 'Bình'})

        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(FormDraft.objects.filter(user=self.user).exists())

    def test_payload_must_be_object(self):
        """Test a non-object payload is rejected"""
        response = self.client.put('/api/v1/drafts/goods_receipt/', {'payload': [1, 2]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class AuthAPITests(TestCase):
    """Test registration and token login"""

    def test_register_and_login(self):
        """Test a registered user can log in and read their profile"""
        client = AuthenticatedAPIClient()
        response = client.post('/api/v1/auth/register/', {
            'username': 'cashier1',
            'email': 'cashier1@test.com',
            'password': 'Xk9-pinCorp2025',
            'password_confirm': 'Xk9-pinCorp2025',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data)

        response = client.post('/api/v1/auth/login/', {'username': 'cashier1', 'password': 'Xk9-pinCorp2025'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        response = client.get('/api/v1/auth/me/')
        self.assertEqual(response.data['username'], 'cashier1')

    def test_requires_authentication(self):
        """Test protected endpoints reject anonymous requests"""
        response = AuthenticatedAPIClient().get('/api/v1/sales/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
