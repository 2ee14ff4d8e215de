from django.urls import path
from . import views

urlpatterns = [
    # Sale endpoints
    path('sales/', views.sale_list_create, name='sale-list-create'),
    path('sales/<int:pk>/', views.sale_detail, name='sale-detail'),

    # Installment endpoints
    path('installments/', views.installment_plan_list, name='installment-plan-list'),
    path('installments/preview/', views.installment_preview, name='installment-preview'),
    path('installments/reports/', views.installment_reports, name='installment-reports'),
    path('installments/refresh-overdue/', views.installment_refresh_overdue, name='installment-refresh-overdue'),
    path('installments/<int:pk>/', views.installment_plan_detail, name='installment-plan-detail'),
    path('installments/<int:pk>/payments/', views.installment_record_payment, name='installment-record-payment'),
    path('installments/<int:pk>/settle/', views.installment_settle, name='installment-settle'),
]
