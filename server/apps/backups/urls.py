"""URL routes for backups app."""

from django.urls import path

from server.apps.backups import views

app_name = 'backups'

urlpatterns = [
    path('<uuid:backup_id>/restore/', views.restore, name='restore'),
]
