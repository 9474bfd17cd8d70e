"""
Complaints app URL configuration.

All routes are registered under the ``/api/complaints/`` prefix.

Route Hierarchy
---------------
  /api/complaints/                          → list / create
  /api/complaints/{id}/                     → retrieve / partial_update

  ── Admin @actions ──────────────────────────────────────────────
  POST /api/complaints/{id}/assign-supervisor/
  POST /api/complaints/{id}/assign-officer-direct/
  POST /api/complaints/{id}/reassign/
  POST /api/complaints/{id}/escalate/
  POST /api/complaints/{id}/override/

  ── Officer / Supervisor @actions ───────────────────────────────
  POST /api/complaints/{id}/submit-resolution/
  POST /api/complaints/{id}/verify/
  POST /api/complaints/{id}/reject/
  POST /api/complaints/{id}/assign-officer/

  ── Citizen @actions ────────────────────────────────────────────
  POST /api/complaints/{id}/withdraw/
  POST /api/complaints/{id}/comments/

  ── Read-side @actions ──────────────────────────────────────────
  GET  /api/complaints/{id}/timeline/
  GET  /api/complaints/{id}/transitions/

  ── Nested: status history ──────────────────────────────────────
  GET  /api/complaints/{complaint_pk}/history/
  GET  /api/complaints/{complaint_pk}/history/{id}/
"""

from rest_framework.routers import DefaultRouter
from rest_framework_nested.routers import NestedDefaultRouter

from .views import ComplaintHistoryViewSet, ComplaintViewSet

router = DefaultRouter()
router.register(
    prefix=r"complaints",
    viewset=ComplaintViewSet,
    basename="complaint",
)

# Parent lookup kwarg → complaint_pk
history_router = NestedDefaultRouter(
    parent_router=router,
    parent_prefix=r"complaints",
    lookup="complaint",
)
history_router.register(
    prefix=r"history",
    viewset=ComplaintHistoryViewSet,
    basename="complaint-history",
)

urlpatterns = [
    *router.urls,
    *history_router.urls,
]
