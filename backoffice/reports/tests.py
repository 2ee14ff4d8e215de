"""
Test suite for the reports module
Tests: profit report, top products and monthly revenue
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.pos.models import Sale


class ReportsTests(TestCase):
    """Test revenue, cost and profit reporting"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

        self.product = TestDataFactory.create_product(stock=Decimal('10'), cost_price=Decimal('500000'))
        self.sale = TestDataFactory.create_sale(self.user, product=self.product, price=Decimal('1000000'))

        self.part = TestDataFactory.create_material(stock=Decimal('10'), purchase_price=Decimal('100000'))
        self.repair = TestDataFactory.create_repair(
            self.user,
            labor_cost=Decimal('200000'),
            materials=[{'material': self.part, 'quantity': Decimal('2'), 'price': Decimal('150000')}],
            payment_status='paid',
            payment_method='cash',
        )

        TestDataFactory.create_goods_receipt(self.user, quantity=Decimal('5'), purchase_price=Decimal('100000'))

    def test_profit_report(self):
        """Test sales and repairs are summed with their cost and the cash book alongside"""
        response = self.client.get('/api/v1/reports/profit/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.assertEqual(response.data['sales']['count'], 1)
        self.assertEqual(Decimal(response.data['sales']['revenue']), Decimal('1000000'))
        self.assertEqual(Decimal(response.data['sales']['cost']), Decimal('500000'))
        self.assertEqual(Decimal(response.data['repairs']['revenue']), Decimal('500000'))
        self.assertEqual(Decimal(response.data['repairs']['cost']), Decimal('200000'))

        summary = response.data['summary']
        self.assertEqual(Decimal(summary['revenue']), Decimal('1500000'))
        self.assertEqual(Decimal(summary['cost']), Decimal('700000'))
        self.assertEqual(Decimal(summary['profit']), Decimal('800000'))
        self.assertEqual(Decimal(summary['margin_percent']), Decimal('53.33'))

        cash = response.data['cash_book']
        self.assertEqual(Decimal(cash['income']), Decimal('1500000'))
        self.assertEqual(Decimal(cash['expense']), Decimal('500000'))
        self.assertEqual(Decimal(cash['net']), Decimal('1000000'))
        self.assertEqual(Decimal(cash['by_category']['inventory_purchase']), Decimal('-500000'))

        self.assertEqual(len(response.data['daily_breakdown']), 1)
        self.assertEqual(Decimal(response.data['daily_breakdown'][0]['revenue']), Decimal('1500000'))

    def test_period_excludes_older_documents(self):
        """Test a sale outside the period is left out"""
        Sale.objects.filter(pk=self.sale.pk).update(date=timezone.now() - timedelta(days=60))
        response = self.client.get('/api/v1/reports/profit/')
        self.assertEqual(response.data['sales']['count'], 0)
        self.assertEqual(Decimal(response.data['summary']['revenue']), Decimal('500000'))

        day = (timezone.localdate() - timedelta(days=60)).isoformat()
        response = self.client.get('/api/v1/reports/profit/', {'date_from': day, 'date_to': day})
        self.assertEqual(response.data['sales']['count'], 1)
        self.assertEqual(response.data['repairs']['count'], 0)
        self.assertEqual(Decimal(response.data['summary']['profit']), Decimal('500000'))

    def test_branch_filter(self):
        """Test another branch reports nothing"""
        response = self.client.get('/api/v1/reports/profit/', {'branch': 'other-branch'})
        self.assertEqual(Decimal(response.data['summary']['revenue']), Decimal('0'))
        self.assertEqual(Decimal(response.data['summary']['margin_percent']), Decimal('0'))

    def test_invalid_period(self):
        """Test malformed or reversed dates are refused"""
        response = self.client.get('/api/v1/reports/profit/', {'date_from': '2025-02-30'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/reports/profit/', {'date_from': '2025-03-02', 'date_to': '2025-03-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_top_products(self):
        """Test lines are grouped with their profit"""
        TestDataFactory.create_sale(self.user, product=self.product, quantity=Decimal('2'), price=Decimal('900000'))
        response = self.client.get('/api/v1/reports/top-products/', {'limit': '5'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['products']), 1)
        row = response.data['products'][0]
        self.assertEqual(row['sku'], self.product.sku)
        self.assertEqual(Decimal(row['quantity']), Decimal('3'))
        self.assertEqual(row['sales'], 2)
        self.assertEqual(Decimal(row['revenue']), Decimal('2800000'))
        self.assertEqual(Decimal(row['profit']), Decimal('1300000'))

    def test_revenue_by_month(self):
        """Test the yearly report has twelve months with this month's figures"""
        today = timezone.localdate()
        response = self.client.get('/api/v1/reports/revenue/', {'year': today.year})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['months']), 12)
        month = response.data['months'][today.month - 1]
        self.assertEqual(month['month'], f'{today.year}-{today.month:02d}')
        self.assertEqual(Decimal(month['revenue']), Decimal('1500000'))
        self.assertEqual(Decimal(month['cash_net']), Decimal('1000000'))
        self.assertEqual(Decimal(response.data['total_revenue']), Decimal('1500000'))

        response = self.client.get('/api/v1/reports/revenue/', {'year': 'last'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_requires_authentication(self):
        """Test anonymous access is refused"""
        self.client.logout()
        response = self.client.get('/api/v1/reports/profit/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
