"""
Test suite for the repairs module
Tests: validation, totals, material consumption deltas, intake payments, status changes, deletion and labels
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.exceptions import ValidationError
from backoffice.catalog.models import StockHistory
from backoffice.core.models import FormDraft
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.finance.models import CashTransaction
from backoffice.repairs.models import RepairOrder
from backoffice.repairs.utils import repair_total, validate_repair


class RepairTotalTests(TestCase):
    """Test repair totals and form validation"""

    def test_total(self):
        """Test parts, outsourced work and labor add up"""
        total = repair_total(
            [{'quantity': Decimal('2'), 'price': Decimal('150000')}],
            [{'quantity': Decimal('1'), 'selling_price': Decimal('300000')}],
            Decimal('200000'),
        )
        self.assertEqual(total, Decimal('800000'))

    def _form(self, **extra):
        data = {
            'customer_name': 'Khách sửa',
            'customer_phone': '0977777777',
            'issue_description': 'Pin chai',
            'labor_cost': Decimal('500000'),
            'materials': [],
            'outsourcing_items': [],
            'payment_status': 'unpaid',
            'deposit_amount': Decimal('0'),
            'partial_payment_amount': Decimal('0'),
            'payment_method': '',
        }
        data.update(extra)
        return data

    def test_required_fields(self):
        """Test name, phone and issue are required"""
        with self.assertRaises(ValidationError) as ctx:
            validate_repair(self._form(customer_name=' ', customer_phone='', issue_description=''))
        self.assertEqual(set(ctx.exception.detail), {'customer_name', 'customer_phone', 'issue_description'})

    def test_nothing_to_bill(self):
        """Test a repair needs parts, outsourcing or labor"""
        with self.assertRaises(ValidationError) as ctx:
            validate_repair(self._form(labor_cost=Decimal('0')))
        self.assertIn('total', ctx.exception.detail)

    def test_payment_method_required_with_money(self):
        """Test a deposit or payment needs a payment method"""
        with self.assertRaises(ValidationError) as ctx:
            validate_repair(self._form(deposit_amount=Decimal('100000')))
        self.assertIn('payment_method', ctx.exception.detail)
        with self.assertRaises(ValidationError):
            validate_repair(self._form(payment_status='paid'))

    def test_partial_amount_bounds(self):
        """Test a partial payment must be above zero and below the total"""
        for amount in (Decimal('0'), Decimal('500000'), Decimal('600000')):
            with self.assertRaises(ValidationError):
                validate_repair(self._form(payment_status='partial', payment_method='cash', partial_payment_amount=amount))
        self.assertEqual(
            validate_repair(self._form(payment_status='partial', payment_method='cash', partial_payment_amount=Decimal('200000'))),
            Decimal('500000')
        )

    def test_deposit_and_partial_within_total(self):
        """Test deposit plus partial payment cannot exceed the total"""
        with self.assertRaises(ValidationError) as ctx:
            validate_repair(self._form(
                payment_status='partial', payment_method='cash',
                deposit_amount=Decimal('300000'), partial_payment_amount=Decimal('300000')
            ))
        self.assertIn('deposit_amount', ctx.exception.detail)


class RepairAPITests(TestCase):
    """Test repair order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(username='kythuat')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.material = TestDataFactory.create_material(name='Cell 21700', stock=Decimal('10'))

    def _payload(self, quantity='2', **extra):
        data = {
            'customer_name': 'Võ Văn Sửa',
            'customer_phone': '0988888888',
            'device_name': 'Pin xe đạp điện 36V',
            'issue_description': 'Không giữ điện',
            'labor_cost': '200000',
            'materials': [{'material': self.material.id, 'quantity': quantity, 'price': '150000'}],
            'outsourcing_items': [],
            'deposit_amount': '100000',
            'payment_method': 'cash',
            'payment_status': 'unpaid',
        }
        data.update(extra)
        return data

    def _create(self, **extra):
        return self.client.post('/api/v1/repairs/', self._payload(**extra), format='json')

    def test_create_repair(self):
        """Test intake: code, totals, stock, deposit and customer"""
        response = self._create()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['code'].startswith('LTN-SC-'))
        self.assertEqual(response.data['barcode'], response.data['code'])
        self.assertEqual(Decimal(response.data['total']), Decimal('500000'))
        self.assertEqual(Decimal(response.data['remaining_amount']), Decimal('400000'))
        self.assertEqual(response.data['technician_name'], 'kythuat')

        order = RepairOrder.objects.get(pk=response.data['id'])
        self.assertIsNotNone(order.customer)
        self.assertEqual(order.customer.phone, '0988888888')

        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('8'))
        history = StockHistory.objects.get(material=self.material)
        self.assertEqual(history.kind, 'export')
        self.assertEqual(history.reference, order.code)

        tx = CashTransaction.objects.get(repair_order=order)
        self.assertEqual(tx.category, 'service_income')
        self.assertEqual(tx.amount, Decimal('100000'))

    def test_create_with_outsourcing(self):
        """Test outsourced work is billed at quantity times selling price"""
        response = self._create(
            materials=[], labor_cost='0', deposit_amount='0', payment_method='',
            outsourcing_items=[{'description': 'Hàn mạch', 'quantity': '2', 'cost_price': '50000', 'selling_price': '80000'}]
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total']), Decimal('160000'))
        self.assertEqual(Decimal(response.data['outsourcing_items'][0]['total']), Decimal('160000'))

    def test_create_invalid(self):
        """Test validation errors come back per field"""
        response = self._create(customer_phone='')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer_phone', response.data)
        self.assertFalse(RepairOrder.objects.exists())

    def test_insufficient_material(self):
        """Test a repair needing more parts than in stock is rejected"""
        response = self._create(quantity='11')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(RepairOrder.objects.exists())
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('10'))

    def test_update_applies_material_delta(self):
        """Test editing parts only moves the difference"""
        order_id = self._create().data['id']

        response = self.client.put(f'/api/v1/repairs/{order_id}/', self._payload(quantity='3'), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('7'))

        response = self.client.put(f'/api/v1/repairs/{order_id}/', self._payload(materials=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('10'))
        self.assertEqual(Decimal(response.data['total']), Decimal('200000'))

    def test_update_books_additional_payment(self):
        """Test marking a repair paid books the rest of the total"""
        order_id = self._create().data['id']
        response = self.client.put(f'/api/v1/repairs/{order_id}/', self._payload(payment_status='paid'), format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        amounts = sorted(CashTransaction.objects.filter(repair_order_id=order_id).values_list('amount', flat=True))
        self.assertEqual(amounts, [Decimal('100000'), Decimal('400000')])
        self.assertEqual(Decimal(response.data['remaining_amount']), Decimal('0'))

    def test_update_cannot_undo_booked_money(self):
        """Test lowering the deposit below what was booked is refused"""
        order_id = self._create().data['id']
        response = self.client.put(f'/api/v1/repairs/{order_id}/', self._payload(quantity='3', deposit_amount='50000'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('8'))

    def test_status_update(self):
        """Test moving a repair through its workflow"""
        order_id = self._create().data['id']
        response = self.client.patch(f'/api/v1/repairs/{order_id}/status/', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        response = self.client.patch(f'/api/v1/repairs/{order_id}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_returns_materials(self):
        """Test deleting a repair restores parts and removes its cash entries"""
        order_id = self._create().data['id']
        response = self.client.delete(f'/api/v1/repairs/{order_id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('10'))
        self.assertFalse(CashTransaction.objects.filter(repair_order_id=order_id).exists())

    def test_filter_by_status(self):
        """Test listing repairs by workflow status"""
        self._create()
        self._create(status='waiting', materials=[])
        response = self.client.get('/api/v1/repairs/', {'status': 'waiting'})
        self.assertEqual(len(response.data), 1)

    def test_draft_discarded_on_create(self):
        """Test the intake draft is cleared once the order is saved"""
        FormDraft.objects.create(user=self.user, form_key='repair_order', payload={'customer_name': 'x'})
        self._create()
        self.assertFalse(FormDraft.objects.filter(user=self.user, form_key='repair_order').exists())

    def test_label(self):
        """Test the barcode label renders as a PNG data URL"""
        order_id = self._create().data['id']
        response = self.client.get(f'/api/v1/repairs/{order_id}/label/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['image'].startswith('data:image/png;base64,'))
        self.assertTrue(RepairOrder.objects.get(pk=order_id).label_image)
