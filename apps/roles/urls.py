"""
Role API URLs.
"""
from django.urls import path
from . import views

urlpatterns = [
    path('metadata/', views.RoleMetadataView.as_view(), name='role-metadata'),
    path('me/', views.SessionRolesView.as_view(), name='role-session'),
    path('check/', views.RoleCheckView.as_view(), name='role-check'),
]
