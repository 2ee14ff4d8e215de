"""
Test suite for the POS module
Tests: checkout, stock deduction, sale deletion, installment schedules, payments, settlement and overdue detection
"""
from datetime import date
from decimal import Decimal
from io import StringIO

from dateutil.relativedelta import relativedelta
from django.core.cache import cache
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backoffice.catalog.models import StockHistory
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.core.utils import PaymentError
from backoffice.finance.models import CashTransaction
from backoffice.finance.services import receivables_summary
from backoffice.parties.models import Customer
from backoffice.pos.installments import (
    build_schedule, early_settlement_quote, record_installment_payment, settle_early,
    refresh_all_overdue, monthly_schedule, due_this_month, expected_revenue
)
from backoffice.pos.models import Sale, InstallmentPlan
from backoffice.pos.utils import derive_sale_payment_status


class SalePaymentStatusTests(TestCase):
    """Test payment status derivation"""

    def test_statuses(self):
        """Test paid / partial / debt / installment"""
        self.assertEqual(derive_sale_payment_status(Decimal('100'), Decimal('100')), 'paid')
        self.assertEqual(derive_sale_payment_status(Decimal('100'), Decimal('30')), 'partial')
        self.assertEqual(derive_sale_payment_status(Decimal('100'), Decimal('0')), 'debt')
        self.assertEqual(derive_sale_payment_status(Decimal('100'), Decimal('30'), installment=True), 'installment')


class SaleAPITests(TestCase):
    """Test checkout and sale deletion"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(stock=Decimal('5'), retail_price=Decimal('800000'))
        self.material = TestDataFactory.create_material(stock=Decimal('20'))

    def _checkout(self, **extra):
        data = {
            'customer_name': 'Nguyễn Văn Khách',
            'customer_phone': '0912345678',
            'items': [
                {'item_type': 'product', 'product': self.product.id, 'quantity': '2', 'selling_price': '800000'},
                {'item_type': 'material', 'material': self.material.id, 'quantity': '4', 'selling_price': '50000'},
            ],
            'discount': '100000',
        }
        data.update(extra)
        return self.client.post('/api/v1/sales/', data, format='json')

    def test_checkout_paid_in_full(self):
        """Test totals, stock and the cash book after a full payment"""
        response = self._checkout()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['code'].startswith('LTN-BH-'))

        sale = Sale.objects.get(pk=response.data['id'])
        self.assertEqual(sale.subtotal, Decimal('1800000'))
        self.assertEqual(sale.total, Decimal('1700000'))
        self.assertEqual(sale.paid_amount, Decimal('1700000'))
        self.assertEqual(sale.payment_status, 'paid')
        self.assertIsNotNone(sale.customer)

        self.product.refresh_from_db()
        self.material.refresh_from_db()
        self.assertEqual(self.product.stock, Decimal('3'))
        self.assertEqual(self.material.stock, Decimal('16'))
        self.assertEqual(StockHistory.objects.filter(kind='sale', reference=sale.code).count(), 2)

        tx = CashTransaction.objects.get(sale=sale)
        self.assertEqual(tx.category, 'sale_income')
        self.assertEqual(tx.amount, Decimal('1700000'))

    def test_checkout_partial_and_debt(self):
        """Test partial payment and sales on credit"""
        response = self._checkout(paid_amount='500000')
        self.assertEqual(response.data['payment_status'], 'partial')
        self.assertEqual(Decimal(response.data['remaining_amount']), Decimal('1200000'))

        response = self._checkout(paid_amount='0')
        self.assertEqual(response.data['payment_status'], 'debt')
        self.assertFalse(CashTransaction.objects.filter(sale_id=response.data['id']).exists())

    def test_overpayment_is_clamped(self):
        """Test paying more than the total records only the total"""
        response = self._checkout(paid_amount='9999999')
        self.assertEqual(Decimal(response.data['paid_amount']), Decimal('1700000'))

    def test_insufficient_stock_aborts_sale(self):
        """Test a short line rolls back the whole checkout"""
        response = self.client.post('/api/v1/sales/', {
            'customer_name': 'Khách',
            'items': [
                {'item_type': 'material', 'material': self.material.id, 'quantity': '1', 'selling_price': '50000'},
                {'item_type': 'product', 'product': self.product.id, 'quantity': '6', 'selling_price': '800000'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)
        self.assertFalse(Sale.objects.exists())
        self.assertFalse(Customer.objects.exists())
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('20'))

    def test_line_needs_stock_item(self):
        """Test a product line without a product is rejected"""
        response = self.client.post('/api/v1/sales/', {
            'items': [{'item_type': 'product', 'quantity': '1', 'selling_price': '1000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_sale_restores_stock(self):
        """Test deleting a sale returns stock and removes its cash entries"""
        response = self._checkout()
        sale_id = response.data['id']
        response = self.client.delete(f'/api/v1/sales/{sale_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

        self.product.refresh_from_db()
        self.material.refresh_from_db()
        self.assertEqual(self.product.stock, Decimal('5'))
        self.assertEqual(self.material.stock, Decimal('20'))
        self.assertFalse(CashTransaction.objects.filter(sale_id=sale_id).exists())
        self.assertEqual(StockHistory.objects.filter(kind='sale_return').count(), 2)

    def test_installment_checkout(self):
        """Test an installment sale creates its plan"""
        response = self._checkout(paid_amount='200000', installment={'terms': 3, 'interest_rate': '0'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment_status'], 'installment')
        plan = InstallmentPlan.objects.get(sale_id=response.data['id'])
        self.assertEqual(plan.terms, 3)
        self.assertEqual(plan.remaining_amount, Decimal('1500000'))
        self.assertEqual(plan.payments.count(), 3)

    def test_installment_checkout_without_down_payment(self):
        """Test an installment sale with no amount paid puts the whole total on the plan"""
        response = self._checkout(installment={'terms': 3})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['paid_amount']), Decimal('0'))
        plan = InstallmentPlan.objects.get(sale_id=response.data['id'])
        self.assertEqual(plan.down_payment, Decimal('0'))
        self.assertEqual(plan.remaining_amount, Decimal('1700000'))
        self.assertFalse(CashTransaction.objects.filter(sale_id=response.data['id']).exists())

    def test_installment_needs_customer(self):
        """Test an anonymous sale cannot be sold on installments"""
        response = self._checkout(customer_name='', customer_phone='', installment={'terms': 3})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Sale.objects.exists())


class BuildScheduleTests(TestCase):
    """Test installment schedule arithmetic"""

    def test_schedule_with_interest(self):
        """Test monthly amounts round up and the last period absorbs the rest"""
        schedule = build_schedule(Decimal('10000000'), Decimal('2000000'), 6, Decimal('1.5'), start_date=date(2025, 1, 15))
        self.assertEqual(schedule['remaining'], Decimal('8000000'))
        self.assertEqual(schedule['total_with_interest'], Decimal('8720000'))
        self.assertEqual(schedule['monthly_amount'], Decimal('1453334'))
        amounts = [p['amount'] for p in schedule['periods']]
        self.assertEqual(amounts[:5], [Decimal('1453334')] * 5)
        self.assertEqual(amounts[5], Decimal('1453330'))
        self.assertEqual(sum(amounts), Decimal('8720000'))
        self.assertEqual(schedule['periods'][0]['due_date'], date(2025, 2, 15))
        self.assertEqual(schedule['end_date'], date(2025, 7, 15))

    def test_month_end_due_dates(self):
        """Test due dates at month end clamp to the last day of shorter months"""
        schedule = build_schedule(Decimal('3000'), Decimal('0'), 2, start_date=date(2025, 1, 31))
        self.assertEqual(schedule['periods'][0]['due_date'], date(2025, 2, 28))
        self.assertEqual(schedule['periods'][1]['due_date'], date(2025, 3, 31))

    def test_invalid_inputs(self):
        """Test term, down payment and rate bounds"""
        with self.assertRaises(PaymentError):
            build_schedule(Decimal('1000'), Decimal('0'), 0)
        with self.assertRaises(PaymentError):
            build_schedule(Decimal('1000'), Decimal('0'), 25)
        with self.assertRaises(PaymentError):
            build_schedule(Decimal('1000'), Decimal('1000'), 3)
        with self.assertRaises(PaymentError):
            build_schedule(Decimal('1000'), Decimal('-1'), 3)
        with self.assertRaises(PaymentError):
            build_schedule(Decimal('1000'), Decimal('0'), 3, Decimal('-1'))


class EarlySettlementQuoteTests(TestCase):
    """Test early settlement discounts"""

    def test_quote(self):
        """Test 5% per remaining term with floor/ceil rounding"""
        quote = early_settlement_quote(Decimal('3000001'), 3)
        self.assertEqual(quote['discount_percent'], Decimal('15'))
        self.assertEqual(quote['discount'], Decimal('450000'))
        self.assertEqual(quote['payable'], Decimal('2550001'))

    def test_discount_is_capped(self):
        """Test the discount never exceeds 30%"""
        quote = early_settlement_quote(Decimal('1000000'), 10)
        self.assertEqual(quote['discount_percent'], Decimal('30'))
        self.assertEqual(quote['payable'], Decimal('700000'))


class InstallmentPlanTests(TestCase):
    """Test payments, settlement and overdue detection on a saved plan"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.sale = TestDataFactory.create_sale(
            self.user, price=Decimal('10000000'), paid_amount=Decimal('2000000'),
            installment={'terms': 6, 'interest_rate': Decimal('1.5')}
        )
        self.plan = self.sale.installment_plan

    def test_plan_created(self):
        """Test the plan balance is the total with interest"""
        self.assertEqual(self.plan.remaining_amount, Decimal('8720000'))
        self.assertEqual(self.plan.status, 'active')
        self.assertEqual(CashTransaction.objects.get(sale=self.sale).amount, Decimal('2000000'))

    def test_full_and_partial_period_payments(self):
        """Test paid and partial periods both reduce the balance"""
        plan = record_installment_payment(self.plan, 1, Decimal('1453334'), user=self.user)
        self.assertEqual(plan.remaining_amount, Decimal('7266666'))
        self.assertEqual(plan.payments.get(period_number=1).status, 'paid')

        plan = record_installment_payment(self.plan, 2, Decimal('500000'), user=self.user)
        period = plan.payments.get(period_number=2)
        self.assertEqual(period.status, 'partial')
        self.assertEqual(plan.remaining_amount, Decimal('6766666'))

        plan = record_installment_payment(self.plan, 2, Decimal('953334'), user=self.user)
        self.assertEqual(plan.payments.get(period_number=2).status, 'paid')
        self.assertEqual(CashTransaction.objects.filter(installment_plan=self.plan, category='installment_payment').count(), 3)

    def test_payment_limits(self):
        """Test zero, excess and already-paid periods are refused"""
        with self.assertRaises(PaymentError):
            record_installment_payment(self.plan, 1, Decimal('0'))
        with self.assertRaises(PaymentError):
            record_installment_payment(self.plan, 1, Decimal('1453335'))
        with self.assertRaises(PaymentError):
            record_installment_payment(self.plan, 7, Decimal('100'))
        record_installment_payment(self.plan, 1, Decimal('1453334'))
        with self.assertRaises(PaymentError):
            record_installment_payment(self.plan, 1, Decimal('1'))

    def test_plan_completes_when_all_periods_paid(self):
        """Test the plan is completed after the last period"""
        for period in self.plan.payments.all():
            plan = record_installment_payment(self.plan, period.period_number, period.amount)
        self.assertEqual(plan.status, 'completed')
        self.assertEqual(plan.remaining_amount, Decimal('0'))

    def test_settle_early(self):
        """Test early settlement closes every period"""
        record_installment_payment(self.plan, 1, Decimal('1453334'))
        plan, quote = settle_early(self.plan, user=self.user)
        self.assertEqual(quote['discount_percent'], Decimal('25'))
        self.assertEqual(plan.status, 'completed')
        self.assertEqual(plan.remaining_amount, Decimal('0'))
        self.assertFalse(plan.payments.exclude(status='paid').exists())

        tx = CashTransaction.objects.filter(installment_plan=self.plan).order_by('-id').first()
        self.assertEqual(tx.amount, quote['payable'])

        with self.assertRaises(PaymentError):
            settle_early(self.plan)

    def test_settle_early_amount_limits(self):
        """Test settling below the quote or above the balance is refused"""
        with self.assertRaises(PaymentError):
            settle_early(self.plan, amount_received=Decimal('0'))
        with self.assertRaises(PaymentError):
            settle_early(self.plan, amount_received=Decimal('8720001'))

        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'active')
        self.assertFalse(self.plan.payments.filter(status='paid').exists())
        self.assertFalse(CashTransaction.objects.filter(installment_plan=self.plan).exists())

        plan, quote = settle_early(self.plan, amount_received=Decimal('8720000'))
        self.assertEqual(plan.status, 'completed')
        self.assertEqual(
            CashTransaction.objects.get(installment_plan=self.plan).amount, Decimal('8720000')
        )

    def test_refresh_overdue(self):
        """Test periods past due are flagged and the plan follows"""
        later = timezone.localdate() + relativedelta(months=2, days=1)
        flagged = refresh_all_overdue(today=later)
        self.assertEqual(flagged, 2)
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'overdue')
        self.assertEqual(self.plan.payments.filter(status='overdue').count(), 2)

        self.assertEqual(refresh_all_overdue(today=later), 0)

    def test_paying_overdue_periods_reactivates_plan(self):
        """Test the plan returns to active once nothing is overdue"""
        refresh_all_overdue(today=timezone.localdate() + relativedelta(months=1, days=1))
        plan = record_installment_payment(self.plan, 1, Decimal('1453334'))
        self.assertEqual(plan.status, 'active')

    def test_reports(self):
        """Test monthly grouping, due-this-month and expected revenue"""
        plans = list(InstallmentPlan.objects.prefetch_related('payments'))
        schedule = monthly_schedule(plans)
        self.assertEqual(len(schedule), 6)
        first_due = self.plan.payments.get(period_number=1).due_date
        self.assertIn(first_due.strftime('%Y-%m'), schedule)

        due = due_this_month(plans, today=first_due)
        self.assertEqual([p.period_number for p in due], [1])
        self.assertEqual(expected_revenue(plans), Decimal('8720000'))


class InstallmentAPITests(TestCase):
    """Test installment endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.sale = TestDataFactory.create_sale(
            self.user, price=Decimal('3000000'), paid_amount=Decimal('0'),
            installment={'terms': 3, 'interest_rate': Decimal('0')}
        )
        self.plan = self.sale.installment_plan

    def test_preview(self):
        """Test the schedule preview saves nothing"""
        response = self.client.post('/api/v1/installments/preview/', {
            'total': '1000000', 'down_payment': '100000', 'terms': 3, 'interest_rate': '0'
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['monthly_amount'], '300000.00')
        self.assertEqual(len(response.data['periods']), 3)

    def test_record_payment(self):
        """Test paying a period through the API"""
        response = self.client.post(
            f'/api/v1/installments/{self.plan.id}/payments/',
            {'period_number': 1, 'amount': '1000000'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['remaining_amount']), Decimal('2000000'))
        self.assertEqual(response.data['paid_periods'], 1)

    def test_record_payment_over_due_amount(self):
        """Test overpaying a period is refused"""
        response = self.client.post(
            f'/api/v1/installments/{self.plan.id}/payments/',
            {'period_number': 1, 'amount': '1000001'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_settlement_quote_and_settle(self):
        """Test quoting then settling early"""
        response = self.client.get(f'/api/v1/installments/{self.plan.id}/settle/')
        self.assertEqual(response.data['payable'], '2550000')
        response = self.client.post(f'/api/v1/installments/{self.plan.id}/settle/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['plan']['status'], 'completed')

    def test_reports_endpoint(self):
        """Test the installment dashboard data"""
        response = self.client.get('/api/v1/installments/reports/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['expected_revenue'], '3000000.00')
        self.assertEqual(response.data['active_plans'], 1)


class RefreshInstallmentsCommandTests(TestCase):
    """Test the refresh_installments management command"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.sale = TestDataFactory.create_sale(
            self.user, price=Decimal('3000000'), paid_amount=Decimal('0'),
            installment={'terms': 3, 'interest_rate': Decimal('0')}
        )
        self.plan = self.sale.installment_plan

    def _run(self, *args):
        out = StringIO()
        call_command('refresh_installments', *args, stdout=out)
        return out.getvalue()

    def test_flags_periods_past_due(self):
        """Test periods due before the given day become overdue and the plan follows"""
        later = self.plan.start_date + relativedelta(months=2, days=1)
        output = self._run('--date', later.isoformat())

        self.assertIn('Periods flagged overdue: 2', output)
        self.assertIn('Plans currently overdue: 1', output)
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'overdue')
        self.assertEqual(
            list(self.plan.payments.filter(status='overdue').values_list('period_number', flat=True)),
            [1, 2]
        )

    def test_invalidates_summary_once(self):
        """Test the receivables cache is bumped once for the whole run"""
        receivables_summary()
        before = cache.get('receivables_generation')
        self._run('--date', (self.plan.start_date + relativedelta(months=3, days=1)).isoformat())
        self.assertEqual(cache.get('receivables_generation'), before + 1)

    def test_branch_filter(self):
        """Test plans of other branches are left alone"""
        later = self.plan.start_date + relativedelta(months=2, days=1)
        output = self._run('--date', later.isoformat(), '--branch', 'other-branch')
        self.assertIn('Periods flagged overdue: 0', output)
        self.plan.refresh_from_db()
        self.assertEqual(self.plan.status, 'active')

    def test_invalid_date(self):
        """Test a malformed date is rejected"""
        with self.assertRaises(CommandError):
            self._run('--date', '2025-13-45')
