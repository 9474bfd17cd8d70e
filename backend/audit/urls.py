"""
Audit app URL configuration.

  GET /api/audit-trail/   → filtered audit entries (admin)
"""

from django.urls import path

from .views import AuditTrailView

urlpatterns = [
    path("audit-trail/", AuditTrailView.as_view(), name="audit-trail"),
]
