from django.urls import path
from . import views

urlpatterns = [
    # Report endpoints
    path('reports/profit/', views.profit_report, name='profit-report'),
    path('reports/top-products/', views.top_products, name='top-products'),
    path('reports/revenue/', views.revenue_report, name='revenue-report'),
]
