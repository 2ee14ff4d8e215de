"""
Test suite for the purchasing module
Tests: purchase orders, goods receipt finalization, stock intake, SKU handling, payment status and cash book entries
"""
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backoffice.catalog.models import Material, StockHistory
from backoffice.core.models import FormDraft
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.finance.models import CashTransaction
from backoffice.purchasing.models import GoodsReceipt, PurchaseOrder
from backoffice.purchasing.utils import receipt_payment_status


class ReceiptPaymentStatusTests(TestCase):
    """Test paid / partial / unpaid derivation"""

    def test_statuses(self):
        """Test status follows the amount left on credit"""
        self.assertEqual(receipt_payment_status(Decimal('100'), Decimal('0')), 'paid')
        self.assertEqual(receipt_payment_status(Decimal('100'), Decimal('40')), 'partial')
        self.assertEqual(receipt_payment_status(Decimal('100'), Decimal('100')), 'unpaid')


class GoodsReceiptAPITests(TestCase):
    """Test the goods receipt endpoint"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier(name='Công ty Pin Việt', phone='0901234567')

    def _post(self, items, **extra):
        data = {'supplier': self.supplier.id, 'payment_method': 'cash', 'items': items}
        data.update(extra)
        return self.client.post('/api/v1/goods-receipts/', data, format='json')

    def test_receive_new_material(self):
        """Test a new line creates a material with code and suggested prices"""
        response = self._post([{
            'name': 'Cell LG 3000mAh', 'quantity': '10', 'purchase_price': '50000', 'is_new': True
        }])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['code'].startswith('LTN-NK-'))
        self.assertEqual(response.data['payment_status'], 'paid')

        material = Material.objects.get(name='Cell LG 3000mAh')
        self.assertTrue(material.sku.startswith('NL-'))
        self.assertEqual(material.stock, Decimal('10'))
        self.assertEqual(material.retail_price, Decimal('70000'))
        self.assertEqual(material.wholesale_price, Decimal('60000'))
        self.assertEqual(material.supplier_name, 'Công ty Pin Việt')

        history = StockHistory.objects.get(material=material)
        self.assertEqual(history.kind, 'import')
        self.assertEqual(history.reference, response.data['code'])

    def test_two_new_lines_get_distinct_skus(self):
        """Test new lines in one receipt never share a code"""
        response = self._post([
            {'name': 'Cell A', 'quantity': '1', 'purchase_price': '1000', 'is_new': True},
            {'name': 'Cell B', 'quantity': '1', 'purchase_price': '1000', 'is_new': True},
        ])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        skus = set(Material.objects.values_list('sku', flat=True))
        self.assertEqual(len(skus), 2)

    def test_new_line_with_existing_sku_merges(self):
        """Test a new line naming an existing SKU adds to that material"""
        material = TestDataFactory.create_material(sku='NL-01012025-001', stock=Decimal('4'))
        response = self._post([{
            'name': 'Same cell', 'sku': 'NL-01012025-001', 'quantity': '6', 'purchase_price': '1000', 'is_new': True
        }])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Material.objects.count(), 1)
        material.refresh_from_db()
        self.assertEqual(material.stock, Decimal('10'))

    def test_existing_line_updates_purchase_price(self):
        """Test receiving an existing material overwrites its purchase price"""
        material = TestDataFactory.create_material(stock=Decimal('1'), purchase_price=Decimal('1000'))
        response = self._post([{
            'material': material.id, 'name': material.name, 'quantity': '2', 'purchase_price': '1500'
        }])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        material.refresh_from_db()
        self.assertEqual(material.purchase_price, Decimal('1500'))
        self.assertEqual(material.stock, Decimal('3'))

    def test_debt_receipt(self):
        """Test a receipt bought partly on credit books only the paid part"""
        response = self._post(
            [{'name': 'Cell', 'quantity': '2', 'purchase_price': '50000', 'is_new': True}],
            is_debt=True, debt_amount='30000'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        receipt = GoodsReceipt.objects.get(pk=response.data['id'])
        self.assertEqual(receipt.total, Decimal('100000'))
        self.assertEqual(receipt.amount_paid, Decimal('70000'))
        self.assertEqual(receipt.payment_status, 'partial')

        tx = CashTransaction.objects.get(goods_receipt=receipt)
        self.assertEqual(tx.category, 'inventory_purchase')
        self.assertEqual(tx.amount, Decimal('-70000'))

    def test_debt_flag_with_zero_debt_is_paid(self):
        """Test is_debt without an amount still counts as paid"""
        response = self._post(
            [{'name': 'Cell', 'quantity': '1', 'purchase_price': '1000', 'is_new': True}],
            is_debt=True, debt_amount='0'
        )
        self.assertEqual(response.data['payment_status'], 'paid')

    def test_fully_on_credit_writes_no_cash_entry(self):
        """Test an unpaid receipt leaves the cash book alone"""
        response = self._post(
            [{'name': 'Cell', 'quantity': '1', 'purchase_price': '1000', 'is_new': True}],
            is_debt=True, debt_amount='1000'
        )
        self.assertEqual(response.data['payment_status'], 'unpaid')
        self.assertFalse(CashTransaction.objects.exists())

    def test_invalid_lines_rejected(self):
        """Test zero quantity and zero price are refused"""
        response = self._post([{'name': 'Cell', 'quantity': '0', 'purchase_price': '1000', 'is_new': True}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self._post([{'name': 'Cell', 'quantity': '1', 'purchase_price': '0', 'is_new': True}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self._post([])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(GoodsReceipt.objects.exists())

    def test_receipt_discards_draft(self):
        """Test finalizing clears the user's receiving draft"""
        FormDraft.objects.create(user=self.user, form_key='goods_receipt', payload={'items': []})
        self._post([{'name': 'Cell', 'quantity': '1', 'purchase_price': '1000', 'is_new': True}])
        self.assertFalse(FormDraft.objects.filter(user=self.user).exists())


class PurchaseOrderAPITests(TestCase):
    """Test ordering from a supplier and receiving against the order"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier(name='Công ty Pin Việt', phone='0901234567')
        self.material = TestDataFactory.create_material(stock=Decimal('2'), purchase_price=Decimal('1000'))

    def _create(self):
        response = self.client.post('/api/v1/purchase-orders/', {
            'supplier': self.supplier.id,
            'expected_date': '2025-12-31',
            'items': [
                {'material': self.material.id, 'quantity': '10', 'unit_price': '1500'},
                {'name': 'Cell Samsung 2600', 'quantity': '4', 'unit_price': '20000'},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def _confirm(self, order_id):
        return self.client.patch(f'/api/v1/purchase-orders/{order_id}/status/', {'status': 'confirmed'}, format='json')

    def _receive(self, order_id, **extra):
        data = {'payment_method': 'cash'}
        data.update(extra)
        return self.client.post(f'/api/v1/purchase-orders/{order_id}/receive/', data, format='json')

    def test_create_order(self):
        """Test a new order is a draft with its total and line snapshot"""
        order = self._create()
        self.assertTrue(order['code'].startswith('PO-'))
        self.assertEqual(order['status'], 'draft')
        self.assertEqual(Decimal(order['total_amount']), Decimal('95000'))
        self.assertEqual(order['items'][0]['name'], self.material.name)
        self.assertEqual(order['items'][0]['sku'], self.material.sku)
        self.assertFalse(GoodsReceipt.objects.exists())

    def test_line_needs_name_or_material(self):
        """Test an anonymous line is refused"""
        response = self.client.post('/api/v1/purchase-orders/', {
            'supplier': self.supplier.id,
            'items': [{'quantity': '1', 'unit_price': '1000'}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_only_drafts_can_be_edited(self):
        """Test editing replaces lines on a draft and is refused once confirmed"""
        order = self._create()
        edit = {'supplier': self.supplier.id, 'items': [{'material': self.material.id, 'quantity': '3', 'unit_price': '1000'}]}
        response = self.client.put(f"/api/v1/purchase-orders/{order['id']}/", edit, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('3000'))
        self.assertEqual(len(response.data['items']), 1)

        self.assertEqual(self._confirm(order['id']).status_code, status.HTTP_200_OK)
        response = self.client.put(f"/api/v1/purchase-orders/{order['id']}/", edit, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_draft_cannot_be_received(self):
        """Test goods are only received against confirmed orders"""
        order = self._create()
        response = self._receive(order['id'])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(GoodsReceipt.objects.exists())

    def test_partial_then_full_receipt(self):
        """Test receiving in two deliveries updates stock, the cash book and the order status"""
        order = self._create()
        self._confirm(order['id'])
        first_line, second_line = order['items']

        response = self._receive(order['id'], items=[{'item': first_line['id'], 'quantity': '4'}])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order']['status'], 'partial')
        receipt = GoodsReceipt.objects.get(pk=response.data['receipt']['id'])
        self.assertEqual(receipt.purchase_order_id, order['id'])
        self.assertEqual(receipt.total, Decimal('6000'))
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('6'))
        self.assertEqual(self.material.purchase_price, Decimal('1500'))
        self.assertEqual(CashTransaction.objects.get(goods_receipt=receipt).amount, Decimal('-6000'))

        response = self._receive(order['id'])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['order']['status'], 'received')
        self.assertEqual(response.data['order']['received_date'], timezone.localdate().isoformat())
        self.assertEqual(Decimal(response.data['receipt']['total']), Decimal('89000'))
        self.assertEqual(len(response.data['order']['receipts']), 2)

        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('12'))
        new_material = Material.objects.get(name='Cell Samsung 2600')
        self.assertEqual(new_material.stock, Decimal('4'))
        self.assertTrue(new_material.sku.startswith('NL-'))
        order_obj = PurchaseOrder.objects.get(pk=order['id'])
        self.assertEqual(order_obj.items.get(pk=second_line['id']).material, new_material)

        response = self._receive(order['id'])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_over_receiving_rejected(self):
        """Test a line cannot receive more than is still outstanding"""
        order = self._create()
        self._confirm(order['id'])
        response = self._receive(order['id'], items=[{'item': order['items'][0]['id'], 'quantity': '11'}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(GoodsReceipt.objects.exists())
        self.material.refresh_from_db()
        self.assertEqual(self.material.stock, Decimal('2'))

    def test_receive_on_credit(self):
        """Test a delivery taken on credit leaves the cash book alone"""
        order = self._create()
        self._confirm(order['id'])
        response = self._receive(
            order['id'], items=[{'item': order['items'][0]['id'], 'quantity': '10'}],
            is_debt=True, debt_amount='15000'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['receipt']['payment_status'], 'unpaid')
        self.assertFalse(CashTransaction.objects.exists())

    def test_receiving_keeps_unrelated_draft(self):
        """Test receiving against an order leaves the receiving form draft alone"""
        FormDraft.objects.create(user=self.user, form_key='goods_receipt', payload={'items': []})
        order = self._create()
        self._confirm(order['id'])
        self._receive(order['id'])
        self.assertTrue(FormDraft.objects.filter(user=self.user, form_key='goods_receipt').exists())

    def test_cancel_and_delete(self):
        """Test only draft or cancelled orders can be deleted"""
        order = self._create()
        self._confirm(order['id'])
        response = self.client.delete(f"/api/v1/purchase-orders/{order['id']}/")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f"/api/v1/purchase-orders/{order['id']}/status/", {'status': 'cancelled'}, format='json')
        self.assertEqual(response.data['status'], 'cancelled')
        response = self._confirm(order['id'])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.delete(f"/api/v1/purchase-orders/{order['id']}/")
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(PurchaseOrder.objects.exists())

    def test_list_filters(self):
        """Test listing by status"""
        first = self._create()
        self._create()
        self._confirm(first['id'])
        response = self.client.get('/api/v1/purchase-orders/?status=confirmed')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([o['id'] for o in response.data], [first['id']])
