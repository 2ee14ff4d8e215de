from django.urls import path
from . import views

urlpatterns = [
    # Cash book endpoints
    path('cash-transactions/', views.cash_transaction_list_create, name='cash-transaction-list-create'),
    path('cash-transactions/balance/', views.cash_balance, name='cash-balance'),
    path('cash-transactions/<int:pk>/', views.cash_transaction_detail, name='cash-transaction-detail'),

    # Receivable endpoints
    path('debts/', views.customer_debt_list, name='customer-debt-list'),
    path('debts/by-customer/', views.customer_debt_groups, name='customer-debt-groups'),
    path('debts/collect/', views.collect_customer_debt, name='collect-customer-debt'),
    path('debts/collect-consolidated/', views.collect_customer_debts_consolidated, name='collect-customer-debts-consolidated'),
    path('debts/summary/', views.receivables_summary_view, name='receivables-summary'),

    # Payable endpoints
    path('payables/', views.supplier_payable_list, name='supplier-payable-list'),
    path('payables/pay/', views.supplier_payment_create, name='supplier-payment-create'),
]
