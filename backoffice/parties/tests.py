"""
Test suite for the parties module
"""
from django.test import TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.parties.models import Customer
from backoffice.parties.utils import find_or_create_customer


class FindOrCreateCustomerTests(TestCase):
    """Test resolving counter input to a customer"""

    def test_match_by_phone(self):
        """Test phone wins over a different name"""
        customer = TestDataFactory.create_customer(name='Nguyễn Văn A', phone='0911111111')
        found, created = find_or_create_customer('Anh A', '0911111111')
        self.assertEqual(found, customer)
        self.assertFalse(created)

    def test_match_by_name_case_insensitive(self):
        """Test a phone-less intake matches on name"""
        customer = TestDataFactory.create_customer(name='Trần Thị B', phone='0922222222')
        found, created = find_or_create_customer('trần thị b', '')
        self.assertEqual(found, customer)
        self.assertFalse(created)

    def test_create_when_unknown(self):
        """Test an unknown customer is created"""
        found, created = find_or_create_customer('Lê C', '0933333333')
        self.assertTrue(created)
        self.assertEqual(Customer.objects.get(phone='0933333333'), found)


class CustomerAPITests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_search_customers(self):
        """Test searching by phone fragment"""
        TestDataFactory.create_customer(name='Phạm D', phone='0944444444')
        TestDataFactory.create_customer(name='Hoàng E', phone='0955555555')
        response = self.client.get('/api/v1/customers/', {'search': '04444'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['name'] for c in response.data], ['Phạm D'])

    def test_create_supplier(self):
        """Test creating a supplier"""
        response = self.client.post('/api/v1/suppliers/', {'name': 'NCC Pin', 'phone': '0966666666'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
