"""Root URL configuration."""

from django.urls import include, path

urlpatterns = [
    path('api/backups/', include('server.apps.backups.urls')),
]
