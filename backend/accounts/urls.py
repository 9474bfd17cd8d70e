"""
Accounts app URL configuration.

All routes are namespaced under ``accounts`` and designed to be included
in the project-level ``urls.py`` as::

    path('api/accounts/', include('accounts.urls')),

Endpoint Map
------------
Current User
    GET    /me/                         → MeView

Officer Roster (Supervisor / Admin)
    GET    /officers/                   → AvailableOfficersView

User Management (Admin)
    GET    /users/                      → UserViewSet.list
    GET    /users/{id}/                 → UserViewSet.retrieve
    PATCH  /users/{id}/activate/        → UserViewSet.activate
    PATCH  /users/{id}/deactivate/      → UserViewSet.deactivate
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import AvailableOfficersView, MeView, UserViewSet

app_name = "accounts"

router = DefaultRouter()
router.register(r"users", UserViewSet, basename="user")

urlpatterns = [
    path("me/", MeView.as_view(), name="me"),
    path("officers/", AvailableOfficersView.as_view(), name="available-officers"),
    path("", include(router.urls)),
]
