from django.urls import path
from . import views

urlpatterns = [
    path('goods-receipts/', views.goods_receipt_list_create, name='goods-receipt-list-create'),
    path('goods-receipts/<int:pk>/', views.goods_receipt_detail, name='goods-receipt-detail'),
    path('purchase-orders/', views.purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/<int:pk>/', views.purchase_order_detail, name='purchase-order-detail'),
    path('purchase-orders/<int:pk>/status/', views.purchase_order_status_update, name='purchase-order-status'),
    path('purchase-orders/<int:pk>/receive/', views.purchase_order_receive, name='purchase-order-receive'),
]
