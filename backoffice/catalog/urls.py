from django.urls import path
from . import views

urlpatterns = [
    # Material endpoints
    path('materials/', views.material_list_create, name='material-list-create'),
    path('materials/next-sku/', views.material_next_sku, name='material-next-sku'),
    path('materials/suggest-prices/', views.material_suggest_prices, name='material-suggest-prices'),
    path('materials/<int:pk>/', views.material_detail, name='material-detail'),
    path('materials/<int:pk>/adjust-stock/', views.material_adjust_stock, name='material-adjust-stock'),
    path('materials/<int:pk>/history/', views.material_history, name='material-history'),

    # Product endpoints
    path('products/', views.product_list_create, name='product-list-create'),
    path('products/<int:pk>/', views.product_detail, name='product-detail'),
    path('products/<int:pk>/adjust-stock/', views.product_adjust_stock, name='product-adjust-stock'),

    # Stock history
    path('stock-history/', views.stock_history_list, name='stock-history-list'),
]
