"""
URL configuration for the back-office project.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "PinCorp Back-Office Admin"
admin.site.site_title = "PinCorp Admin Portal"
admin.site.index_title = "Welcome to PinCorp Back-Office"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backoffice.core.urls')),
    path('api/v1/', include('backoffice.parties.urls')),
    path('api/v1/', include('backoffice.catalog.urls')),
    path('api/v1/', include('backoffice.purchasing.urls')),
    path('api/v1/', include('backoffice.pos.urls')),
    path('api/v1/', include('backoffice.repairs.urls')),
    path('api/v1/', include('backoffice.finance.urls')),
    path('api/v1/', include('backoffice.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
