"""
Test suite for the catalog module
Tests: SKU generation, price suggestions, stock movements and material endpoints
"""
from datetime import date
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from backoffice.catalog.models import Material, StockHistory
from backoffice.catalog.utils import InsufficientStock, adjust_stock, generate_material_sku, suggest_prices
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class MaterialSkuTests(TestCase):
    """Test NL-DDMMYYYY-NNN material codes"""

    def test_first_sku_of_the_day(self):
        """Test the first code uses sequence 001"""
        self.assertEqual(generate_material_sku(day=date(2025, 1, 9)), 'NL-09012025-001')

    def test_sku_skips_taken_codes(self):
        """Test the first free sequence is returned"""
        TestDataFactory.create_material(sku='NL-09012025-001')
        TestDataFactory.create_material(sku='NL-09012025-003')
        self.assertEqual(generate_material_sku(day=date(2025, 1, 9)), 'NL-09012025-002')

    def test_sku_skips_codes_reserved_by_unsaved_lines(self):
        """Test codes handed to other lines of the same form are not reused"""
        TestDataFactory.create_material(sku='NL-09012025-001')
        sku = generate_material_sku(extra_skus=['NL-09012025-002'], day=date(2025, 1, 9))
        self.assertEqual(sku, 'NL-09012025-003')


class SuggestPricesTests(TestCase):
    """Test retail/wholesale suggestions"""

    def test_suggested_prices_round_half_up(self):
        """Test 40% and 20% markups rounded to whole units"""
        prices = suggest_prices(Decimal('123457'))
        self.assertEqual(prices['retail_price'], Decimal('172840'))
        self.assertEqual(prices['wholesale_price'], Decimal('148148'))

    def test_suggested_prices_for_zero(self):
        """Test a zero purchase price suggests zero"""
        prices = suggest_prices(0)
        self.assertEqual(prices['retail_price'], Decimal('0'))


class AdjustStockTests(TestCase):
    """Test signed stock movements"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.material = TestDataFactory.create_material(stock=Decimal('5'))

    def test_adjust_stock_records_history(self):
        """Test a movement updates stock and writes before/after"""
        history = adjust_stock(self.material, Decimal('-2'), 'export', reason='Repair', user=self.user, reference='LTN-SC-1')
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('3'))
        self.assertEqual(history.quantity_before, Decimal('5'))
        self.assertEqual(history.quantity_after, Decimal('3'))
        self.assertEqual(history.quantity, Decimal('-2'))
        self.assertEqual(history.reference, 'LTN-SC-1')
        self.assertEqual(history.user, self.user)

    def test_adjust_stock_never_goes_negative(self):
        """Test taking more than is on hand is rejected"""
        with self.assertRaises(InsufficientStock) as ctx:
            adjust_stock(self.material, Decimal('-6'), 'export')
        self.assertEqual(ctx.exception.available, Decimal('5'))
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('5'))
        self.assertFalse(StockHistory.objects.exists())


class MaterialAPITests(TestCase):
    """Test material endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_material_generates_sku(self):
        """Test a material created without SKU gets an NL code"""
        response = self.client.post('/api/v1/materials/', {
            'name': 'Cell 18650',
            'purchase_price': '25000',
            'retail_price': '35000',
            'wholesale_price': '30000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['sku'].startswith('NL-'))

    def test_duplicate_sku_rejected(self):
        """Test SKUs are unique regardless of case"""
        TestDataFactory.create_material(sku='NL-01012025-001')
        response = self.client.post('/api/v1/materials/', {
            'name': 'Cell', 'sku': 'nl-01012025-001', 'purchase_price': '1000'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_adjust_stock_endpoint(self):
        """Test manual stock correction and its audit trail"""
        material = TestDataFactory.create_material(stock=Decimal('2'))
        response = self.client.post(
            f'/api/v1/materials/{material.id}/adjust-stock/',
            {'quantity': '3', 'reason': 'Stock count'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        material.refresh_from_db()
        self.assertEqual(material.stock, Decimal('5'))

        response = self.client.post(
            f'/api/v1/materials/{material.id}/adjust-stock/',
            {'quantity': '-9', 'reason': 'Broken'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_low_stock_filter(self):
        """Test low_stock lists in-stock materials at or under their threshold"""
        low = TestDataFactory.create_material(name='Low', stock=Decimal('2'))
        low.low_stock_threshold = Decimal('3')
        low.save()
        TestDataFactory.create_material(name='Plenty', stock=Decimal('50'))
        TestDataFactory.create_material(name='Empty', stock=Decimal('0'))

        response = self.client.get('/api/v1/materials/', {'low_stock': 'true'})
        self.assertEqual([m['name'] for m in response.data], ['Low'])

    def test_suggest_prices_endpoint(self):
        """Test the price suggestion endpoint"""
        response = self.client.get('/api/v1/materials/suggest-prices/', {'purchase_price': '100000'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['retail_price'], Decimal('140000'))
        self.assertEqual(response.data['wholesale_price'], Decimal('120000'))
