from django.urls import path
from . import views

urlpatterns = [
    path('repairs/', views.repair_list_create, name='repair-list-create'),
    path('repairs/<int:pk>/', views.repair_detail, name='repair-detail'),
    path('repairs/<int:pk>/status/', views.repair_status_update, name='repair-status-update'),
    path('repairs/<int:pk>/label/', views.repair_label, name='repair-label'),
]
