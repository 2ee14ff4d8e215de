"""
Test suite for the finance module
Tests: cash book, receivables, debt collection, supplier payables, cached summary and integrity checks
"""
from datetime import timedelta
from decimal import Decimal
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import PaymentError
from backoffice.finance.cache import GENERATION_KEY, invalidate_receivables, summary_cache_key
from backoffice.finance.models import CashTransaction
from backoffice.finance.services import (
    customer_key, list_customer_debts, group_debts_by_customer, collect_debt, collect_consolidated,
    list_supplier_payables, pay_supplier, receivables_summary, find_debt_inconsistencies
)
from backoffice.pos.models import Sale
from backoffice.repairs.models import RepairOrder


class CashTransactionModelTests(TestCase):
    """Test the cash book sign convention"""

    def test_sign_follows_type(self):
        """Test expenses are stored negative and income positive"""
        expense = CashTransaction.objects.create(type='expense', category='other_expense', amount=Decimal('5000'))
        income = CashTransaction.objects.create(type='income', category='other_income', amount=Decimal('-7000'))
        self.assertEqual(expense.amount, Decimal('-5000'))
        self.assertEqual(income.amount, Decimal('7000'))


class ReceivablesTests(TestCase):
    """Test listing, grouping and collecting customer debts"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.customer = TestDataFactory.create_customer(name='Đỗ Văn Nợ', phone='0911000111')

    def _sale(self, paid, days_ago=0, price=Decimal('1000000')):
        sale = TestDataFactory.create_sale(self.user, price=price, paid_amount=paid, customer=self.customer)
        if days_ago:
            Sale.objects.filter(pk=sale.pk).update(date=timezone.now() - timedelta(days=days_ago))
            sale.refresh_from_db()
        return sale

    def _repair(self, labor, days_ago=0):
        order = TestDataFactory.create_repair(
            self.user, customer_name=self.customer.name, customer_phone=self.customer.phone, labor_cost=labor
        )
        if days_ago:
            RepairOrder.objects.filter(pk=order.pk).update(creation_date=timezone.now() - timedelta(days=days_ago))
            order.refresh_from_db()
        return order

    def test_list_customer_debts(self):
        """Test open sales, repairs and plans are listed oldest first"""
        self._sale(Decimal('1000000'))
        debt_sale = self._sale(Decimal('0'), days_ago=10)
        partial_sale = self._sale(Decimal('400000'), days_ago=3)
        repair = self._repair(Decimal('500000'), days_ago=5)
        plan_sale = TestDataFactory.create_sale(
            self.user, price=Decimal('3000000'), paid_amount=Decimal('0'),
            customer=self.customer, installment={'terms': 3, 'interest_rate': Decimal('0')}
        )

        debts = list_customer_debts()
        self.assertEqual(
            [(d['kind'], d['code']) for d in debts],
            [
                ('sale', debt_sale.code),
                ('repair', repair.code),
                ('sale', partial_sale.code),
                ('installment', plan_sale.code),
            ]
        )
        self.assertEqual(debts[2]['remaining'], Decimal('600000'))
        self.assertEqual(debts[3]['remaining'], Decimal('3000000'))

    def test_installment_sale_not_counted_twice(self):
        """Test an installment sale only shows up through its plan"""
        TestDataFactory.create_sale(
            self.user, price=Decimal('3000000'), paid_amount=Decimal('0'),
            customer=self.customer, installment={'terms': 3, 'interest_rate': Decimal('0')}
        )
        self.assertEqual([d['kind'] for d in list_customer_debts()], ['installment'])

    def test_group_by_customer(self):
        """Test debts of one customer are grouped and groups sorted by total"""
        self._sale(Decimal('0'))
        self._repair(Decimal('500000'))
        other = TestDataFactory.create_customer(name='Khác', phone='0922000222')
        TestDataFactory.create_sale(self.user, price=Decimal('100000'), paid_amount=Decimal('0'), customer=other)

        groups = group_debts_by_customer(list_customer_debts())
        self.assertEqual(len(groups), 2)
        self.assertEqual(groups[0]['customer_key'], customer_key('0911000111', 'Đỗ Văn Nợ'))
        self.assertEqual(groups[0]['total_debt'], Decimal('1500000'))
        self.assertEqual(groups[0]['sale_count'], 1)
        self.assertEqual(groups[0]['repair_count'], 1)
        self.assertEqual(groups[1]['total_debt'], Decimal('100000'))

    def test_collect_sale_debt(self):
        """Test partial then full collection on a sale"""
        sale = self._sale(Decimal('0'))
        result = collect_debt('sale', sale.pk, Decimal('300000'), user=self.user)
        sale.refresh_from_db()
        self.assertEqual(sale.payment_status, 'partial')
        self.assertEqual(result['remaining'], Decimal('700000'))
        self.assertEqual(result['transaction'].category, 'sale_income')

        collect_debt('sale', sale.pk, Decimal('700000'))
        sale.refresh_from_db()
        self.assertEqual(sale.payment_status, 'paid')
        self.assertEqual(sale.paid_amount, Decimal('1000000'))

    def test_collect_more_than_owed(self):
        """Test amounts above the balance or not positive are refused"""
        sale = self._sale(Decimal('0'))
        with self.assertRaises(PaymentError):
            collect_debt('sale', sale.pk, Decimal('1000001'))
        with self.assertRaises(PaymentError):
            collect_debt('sale', sale.pk, Decimal('0'))
        self.assertFalse(CashTransaction.objects.filter(sale=sale).exists())

    def test_collect_repair_debt(self):
        """Test repair collections add to the partial payment"""
        order = self._repair(Decimal('500000'))
        collect_debt('repair', order.pk, Decimal('200000'))
        order.refresh_from_db()
        self.assertEqual(order.payment_status, 'partial')
        self.assertEqual(order.partial_payment_amount, Decimal('200000'))

        collect_debt('repair', order.pk, Decimal('300000'))
        order.refresh_from_db()
        self.assertEqual(order.payment_status, 'paid')
        self.assertEqual(order.remaining_amount, Decimal('0'))
        with self.assertRaises(PaymentError):
            collect_debt('repair', order.pk, Decimal('1'))

    def test_collect_installment_debt(self):
        """Test an installment collection fills periods earliest first"""
        sale = TestDataFactory.create_sale(
            self.user, price=Decimal('3000000'), paid_amount=Decimal('0'),
            customer=self.customer, installment={'terms': 3, 'interest_rate': Decimal('0')}
        )
        plan = sale.installment_plan
        result = collect_debt('installment', plan.pk, Decimal('1500000'))
        self.assertEqual(result['remaining'], Decimal('1500000'))
        statuses = list(plan.payments.order_by('period_number').values_list('status', flat=True))
        self.assertEqual(statuses, ['paid', 'partial', 'pending'])
        self.assertEqual(result['transaction'].category, 'installment_payment')

    def test_collect_consolidated(self):
        """Test one payment spread oldest debt first"""
        sale = self._sale(Decimal('0'), days_ago=10)
        order = self._repair(Decimal('500000'), days_ago=5)
        key = customer_key(self.customer.phone, self.customer.name)

        with self.assertRaises(PaymentError):
            collect_consolidated(key, Decimal('1500001'))

        allocations = collect_consolidated(key, Decimal('1200000'), user=self.user)
        self.assertEqual([(a['kind'], a['amount']) for a in allocations], [('sale', Decimal('1000000')), ('repair', Decimal('200000'))])
        sale.refresh_from_db()
        order.refresh_from_db()
        self.assertEqual(sale.payment_status, 'paid')
        self.assertEqual(order.payment_status, 'partial')
        self.assertEqual(CashTransaction.objects.filter(category__in=('sale_income', 'service_income')).count(), 2)

    def test_collect_consolidated_unknown_customer(self):
        """Test collecting for a customer without debts"""
        with self.assertRaises(PaymentError):
            collect_consolidated('000-nobody', Decimal('1'))

    def test_summary_is_invalidated_on_changes(self):
        """Test the cached summary follows new sales and collections"""
        sale = self._sale(Decimal('0'))
        summary = receivables_summary()
        self.assertEqual(summary['total_receivable'], Decimal('1000000'))
        self.assertEqual(summary['customer_count'], 1)

        self._repair(Decimal('500000'))
        self.assertEqual(receivables_summary()['total_receivable'], Decimal('1500000'))

        collect_debt('sale', sale.pk, Decimal('1000000'))
        summary = receivables_summary()
        self.assertEqual(summary['total_receivable'], Decimal('500000'))
        self.assertEqual(summary['repair_receivable'], Decimal('500000'))

    def test_lost_generation_counter_skips_old_summaries(self):
        """Test a counter dropped from the cache never reuses an earlier generation"""
        self._sale(Decimal('0'))
        stale_key = summary_cache_key()
        cache.set(stale_key, {'total_receivable': Decimal('1')}, 300)

        cache.delete(GENERATION_KEY)
        self.assertNotEqual(summary_cache_key(), stale_key)

        cache.delete(GENERATION_KEY)
        invalidate_receivables()
        self.assertNotEqual(summary_cache_key(), stale_key)
        self.assertEqual(receivables_summary()['total_receivable'], Decimal('1000000'))


class SupplierPayableTests(TestCase):
    """Test what is owed to suppliers"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.supplier = TestDataFactory.create_supplier(name='NCC Cell')

    def test_payables_and_payment(self):
        """Test receipt debt, a payment and an overpayment"""
        TestDataFactory.create_goods_receipt(self.user, supplier=self.supplier, debt_amount=Decimal('300000'))
        TestDataFactory.create_goods_receipt(self.user)

        payables = list_supplier_payables()
        self.assertEqual(len(payables), 1)
        self.assertEqual(payables[0]['supplier_id'], self.supplier.pk)
        self.assertEqual(payables[0]['debt'], Decimal('300000'))

        result = pay_supplier(self.supplier, Decimal('100000'), user=self.user)
        self.assertEqual(result['previous_debt'], Decimal('300000'))
        self.assertEqual(result['remaining'], Decimal('200000'))
        self.assertEqual(result['transaction'].amount, Decimal('-100000'))
        self.assertEqual(list_supplier_payables()[0]['debt'], Decimal('200000'))

        with self.assertRaises(PaymentError):
            pay_supplier(self.supplier, Decimal('200001'))

        pay_supplier(self.supplier, Decimal('200000'))
        self.assertEqual(list_supplier_payables(), [])
        self.assertEqual(receivables_summary()['total_payable'], Decimal('0'))


class DebtIntegrityTests(TestCase):
    """Test the balance consistency check"""

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_consistent_data(self):
        """Test clean data reports nothing"""
        TestDataFactory.create_sale(self.user, paid_amount=Decimal('100'))
        self.assertEqual(find_debt_inconsistencies(), [])
        out = StringIO()
        call_command('check_debt_integrity', stdout=out)
        self.assertIn('consistent', out.getvalue())

    def test_overpaid_sale_reported(self):
        """Test a sale paid beyond its total is flagged"""
        sale = TestDataFactory.create_sale(self.user, price=Decimal('1000'))
        Sale.objects.filter(pk=sale.pk).update(paid_amount=Decimal('1500'))
        problems = find_debt_inconsistencies()
        self.assertEqual([p['code'] for p in problems], [sale.code])
        with self.assertRaises(CommandError):
            call_command('check_debt_integrity', '--fail', stdout=StringIO())


class FinanceAPITests(TestCase):
    """Test finance endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.customer = TestDataFactory.create_customer(name='Khách API', phone='0933000333')

    def test_manual_cash_entry(self):
        """Test a manual expense is stored negative"""
        response = self.client.post('/api/v1/cash-transactions/', {
            'type': 'expense', 'category': 'other_expense', 'amount': '50000', 'notes': 'Tiền điện'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['amount']), Decimal('-50000'))

    def test_category_must_match_type(self):
        """Test an income entry cannot use an expense category"""
        response = self.client.post('/api/v1/cash-transactions/', {
            'type': 'income', 'category': 'supplier_payment', 'amount': '50000'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_and_balance(self):
        """Test filtering the cash book and the balance"""
        TestDataFactory.create_sale(self.user, price=Decimal('1000000'), customer=self.customer)
        CashTransaction.objects.create(type='expense', category='other_expense', amount=Decimal('50000'))

        response = self.client.get('/api/v1/cash-transactions/', {'type': 'expense'})
        self.assertEqual(len(response.data), 1)

        response = self.client.get('/api/v1/cash-transactions/balance/')
        self.assertEqual(Decimal(response.data['income']), Decimal('1000000'))
        self.assertEqual(Decimal(response.data['expense']), Decimal('-50000'))
        self.assertEqual(Decimal(response.data['balance']), Decimal('950000'))

    def test_collect_endpoints(self):
        """Test single and consolidated collection through the API"""
        sale = TestDataFactory.create_sale(self.user, price=Decimal('1000000'), paid_amount=Decimal('0'), customer=self.customer)
        response = self.client.post('/api/v1/debts/collect/', {'kind': 'sale', 'id': sale.pk, 'amount': '400000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['remaining']), Decimal('600000'))

        response = self.client.get('/api/v1/debts/by-customer/')
        key = response.data[0]['customer_key']
        self.assertEqual(Decimal(response.data[0]['total_debt']), Decimal('600000'))

        response = self.client.post('/api/v1/debts/collect-consolidated/', {'customer_key': key, 'amount': '600000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['allocations']), 1)
        self.assertEqual(self.client.get('/api/v1/debts/').data, [])

    def test_collect_missing_debt(self):
        """Test collecting against an unknown record"""
        response = self.client.post('/api/v1/debts/collect/', {'kind': 'repair', 'id': 999, 'amount': '1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_supplier_payment_endpoint(self):
        """Test paying a supplier through the API"""
        supplier = TestDataFactory.create_supplier()
        TestDataFactory.create_goods_receipt(self.user, supplier=supplier, debt_amount=Decimal('200000'))
        response = self.client.get('/api/v1/payables/')
        self.assertEqual(Decimal(response.data[0]['debt']), Decimal('200000'))

        response = self.client.post('/api/v1/payables/pay/', {'supplier': supplier.pk, 'amount': '300000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/payables/pay/', {'supplier': supplier.pk, 'amount': '150000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['remaining']), Decimal('50000'))

    def test_summary_endpoint(self):
        """Test the dashboard summary"""
        TestDataFactory.create_sale(self.user, price=Decimal('1000000'), paid_amount=Decimal('250000'), customer=self.customer)
        response = self.client.get('/api/v1/debts/summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_receivable']), Decimal('750000'))
        self.assertEqual(response.data['receivable_count'], 1)
