"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backoffice.catalog.models import Material, Product
from backoffice.parties.models import Customer, Supplier
from backoffice.pos.utils import create_sale
from backoffice.purchasing.utils import finalize_goods_receipt
from backoffice.repairs.utils import save_repair_order
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def random_phone():
        return f'09{random.randint(10000000, 99999999)}'

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_customer(name=None, phone=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if phone is None:
            phone = TestDataFactory.random_phone()
        return Customer.objects.create(name=name, phone=phone)

    @staticmethod
    def create_supplier(name=None, phone=None, email=None):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        if phone is None:
            phone = TestDataFactory.random_phone()
        if not email:
            email = f'{name.lower()}@test.com'
        return Supplier.objects.create(name=name, phone=phone, email=email)

    @staticmethod
    def create_material(name=None, sku=None, stock=Decimal('10'), purchase_price=Decimal('100000'),
                        retail_price=None, wholesale_price=None, unit='cái'):
        """Create a test material"""
        if not name:
            name = f'Material_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU-{TestDataFactory.random_string(8).upper()}'
        return Material.objects.create(
            name=name,
            sku=sku,
            unit=unit,
            stock=stock,
            purchase_price=purchase_price,
            retail_price=retail_price if retail_price is not None else purchase_price * Decimal('1.4'),
            wholesale_price=wholesale_price if wholesale_price is not None else purchase_price * Decimal('1.2'),
        )

    @staticmethod
    def create_product(name=None, sku=None, stock=Decimal('5'), cost_price=Decimal('500000'), retail_price=Decimal('800000')):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'PRD-{TestDataFactory.random_string(8).upper()}'
        return Product.objects.create(
            name=name,
            sku=sku,
            stock=stock,
            cost_price=cost_price,
            retail_price=retail_price,
            wholesale_price=retail_price,
        )

    @staticmethod
    def create_sale(user, product=None, quantity=Decimal('1'), price=Decimal('1000000'), paid_amount=None,
                    customer=None, installment=None, branch=None):
        """Check out a one-line sale through the real checkout path"""
        if product is None:
            product = TestDataFactory.create_product(stock=quantity + 10)
        if customer is None:
            customer = TestDataFactory.create_customer()
        data = {
            'customer': customer,
            'items': [{
                'item_type': 'product',
                'product': product,
                'quantity': quantity,
                'selling_price': price,
                'discount': Decimal('0'),
            }],
            'discount': Decimal('0'),
            'paid_amount': paid_amount,
            'payment_method': 'cash',
            'notes': '',
            'installment': installment,
        }
        if branch:
            data['branch'] = branch
        return create_sale(data, user=user)

    @staticmethod
    def create_repair(user, customer_name=None, customer_phone=None, labor_cost=Decimal('200000'),
                      materials=None, payment_status='unpaid', deposit_amount=Decimal('0'),
                      partial_payment_amount=Decimal('0'), payment_method='', status='received', branch=None):
        """Take in a repair order through the real save path"""
        data = {
            'customer_name': customer_name or f'Customer_{TestDataFactory.random_string(6)}',
            'customer_phone': customer_phone or TestDataFactory.random_phone(),
            'device_name': 'Pin xe điện 48V',
            'issue_description': 'Pin không sạc được',
            'labor_cost': labor_cost,
            'materials': materials or [],
            'outsourcing_items': [],
            'payment_status': payment_status,
            'deposit_amount': deposit_amount,
            'partial_payment_amount': partial_payment_amount,
            'payment_method': payment_method,
            'status': status,
            'notes': '',
        }
        if branch:
            data['branch'] = branch
        return save_repair_order(data, user=user)

    @staticmethod
    def create_goods_receipt(user, supplier=None, material=None, quantity=Decimal('5'),
                             purchase_price=Decimal('100000'), debt_amount=Decimal('0'), branch=None):
        """Receive one existing material from a supplier"""
        if supplier is None:
            supplier = TestDataFactory.create_supplier()
        if material is None:
            material = TestDataFactory.create_material(stock=Decimal('0'))
        data = {
            'supplier': supplier,
            'payment_method': 'cash',
            'notes': '',
            'discount': Decimal('0'),
            'tax': Decimal('0'),
            'is_debt': debt_amount > 0,
            'debt_amount': debt_amount,
            'items': [{
                'material': material,
                'name': material.name,
                'quantity': quantity,
                'purchase_price': purchase_price,
                'retail_price': Decimal('0'),
                'wholesale_price': Decimal('0'),
                'is_new': False,
            }],
        }
        if branch:
            data['branch'] = branch
        return finalize_goods_receipt(data, user=user)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
