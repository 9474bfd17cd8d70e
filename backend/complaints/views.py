"""
Complaints app ViewSets.

Architecture: Views are intentionally thin.
Every view follows the strict three-step pattern:

    1. Parse / validate input via a serializer.
    2. Delegate all business logic to the appropriate service class.
    3. Serialize the result and return a DRF ``Response``.

Permission Strategy
-------------------
The base permission is ``IsAuthenticated``.  Role and ownership checks
are enforced exclusively inside the service layer; domain exceptions are
translated to HTTP responses by ``core.domain.exception_handler``.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from accounts.models import Role

from .serializers import (
    AllowedTransitionsSerializer,
    AssignOfficerSerializer,
    AssignSupervisorSerializer,
    CommentCreateSerializer,
    ComplaintCommentSerializer,
    ComplaintCreateSerializer,
    ComplaintDetailSerializer,
    ComplaintEditSerializer,
    ComplaintFilterSerializer,
    ComplaintListSerializer,
    ComplaintStatusHistorySerializer,
    ComplaintUpdateSerializer,
    EscalateSerializer,
    OverrideSerializer,
    ReassignSerializer,
    ResolutionSubmitSerializer,
    ReviewSerializer,
    SlaSnapshotSerializer,
    TimelineEventSerializer,
)
from .services import ComplaintLifecycleService, ComplaintQueryService


class ComplaintViewSet(viewsets.ViewSet):
    """
    Central ViewSet for the complaints app.

    Uses ``viewsets.ViewSet`` (not ``ModelViewSet``) so every action is
    explicitly defined and no unintended CRUD operation is exposed.
    Complaints are never deleted.
    """

    permission_classes = [IsAuthenticated]

    def get_lifecycle_service(self) -> ComplaintLifecycleService:
        return ComplaintLifecycleService()

    def get_query_service(self) -> ComplaintQueryService:
        return ComplaintQueryService()

    def _detail_response(self, complaint, http_status=status.HTTP_200_OK) -> Response:
        out = ComplaintDetailSerializer(complaint)
        return Response(out.data, status=http_status)

    # ── Standard CRUD ────────────────────────────────────────────────

    @extend_schema(
        summary="List complaints",
        description=(
            "Complaints visible to the caller: admins see all, supervisors and "
            "officers their assignments, citizens their own complaints."
        ),
        parameters=[ComplaintFilterSerializer],
        responses={200: OpenApiResponse(response=ComplaintListSerializer(many=True))},
        tags=["Complaints"],
    )
    def list(self, request: Request) -> Response:
        filters = ComplaintFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        qs = self.get_query_service().list_complaints(request.user, **filters.validated_data)
        return Response(ComplaintListSerializer(qs, many=True).data)

    @extend_schema(
        summary="File a complaint",
        description="Citizens only.  The complaint starts in CREATED with MEDIUM priority.",
        request=ComplaintCreateSerializer,
        responses={
            201: OpenApiResponse(response=ComplaintDetailSerializer, description="Complaint filed."),
            400: OpenApiResponse(description="Validation error."),
            403: OpenApiResponse(description="Caller is not a citizen."),
        },
        tags=["Complaints"],
    )
    def create(self, request: Request) -> Response:
        serializer = ComplaintCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = self.get_lifecycle_service().file_complaint(
            request.user, serializer.validated_data,
        )
        return self._detail_response(complaint, status.HTTP_201_CREATED)

    @extend_schema(
        summary="Retrieve complaint details",
        description=(
            "Full complaint with status history, comments, derived SLA status "
            "and the transitions the caller may request next."
        ),
        responses={
            200: OpenApiResponse(response=ComplaintDetailSerializer),
            404: OpenApiResponse(description="Complaint not found or not visible."),
        },
        tags=["Complaints"],
    )
    def retrieve(self, request: Request, pk: int = None) -> Response:
        detail = self.get_query_service().get_detail(pk, request.user)
        data = dict(ComplaintDetailSerializer(detail.complaint).data)
        data["sla_status"] = SlaSnapshotSerializer(detail.sla).data
        data["allowed_transitions"] = list(detail.allowed_transitions)
        return Response(data)

    @extend_schema(
        summary="Update a complaint",
        description=(
            "Admin or assigned supervisor.  A status change must be a legal "
            "transition for the caller's role; other fields apply as given.  "
            "A citizen may instead edit title, description, category, area and "
            "images of their own complaint while it is CREATED."
        ),
        request=ComplaintUpdateSerializer,
        responses={
            200: OpenApiResponse(response=ComplaintDetailSerializer),
            400: OpenApiResponse(description="Validation error or invalid transition."),
            403: OpenApiResponse(description="Role not authorized."),
            404: OpenApiResponse(description="Complaint not found or not assigned to caller."),
        },
        tags=["Complaints"],
    )
    def partial_update(self, request: Request, pk: int = None) -> Response:
        service = self.get_lifecycle_service()
        if request.user.role == Role.CITIZEN:
            serializer = ComplaintEditSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            complaint = service.edit_own_complaint(pk, request.user, serializer.validated_data)
            return self._detail_response(complaint)

        serializer = ComplaintUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = service.update(
            pk, serializer.validated_data, request.user.role, request.user,
        )
        return self._detail_response(complaint)

    # ── Admin @actions ───────────────────────────────────────────────

    @extend_schema(
        summary="Assign to supervisor",
        request=AssignSupervisorSerializer,
        responses={200: OpenApiResponse(response=ComplaintDetailSerializer)},
        tags=["Complaints – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="assign-supervisor")
    def assign_supervisor(self, request: Request, pk: int = None) -> Response:
        serializer = AssignSupervisorSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = self.get_lifecycle_service().assign_to_supervisor(
            pk, serializer.validated_data["supervisor_id"], request.user,
        )
        return self._detail_response(complaint)

    @extend_schema(
        summary="Assign directly to an officer",
        request=AssignOfficerSerializer,
        responses={200: OpenApiResponse(response=ComplaintDetailSerializer)},
        tags=["Complaints – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="assign-officer-direct")
    def assign_officer_direct(self, request: Request, pk: int = None) -> Response:
        serializer = AssignOfficerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = self.get_lifecycle_service().assign_to_officer_directly(
            pk, serializer.validated_data["officer_id"], request.user,
        )
        return self._detail_response(complaint)

    @extend_schema(
        summary="Reassign to another supervisor or officer",
        request=ReassignSerializer,
        responses={
            200: OpenApiResponse(response=ComplaintDetailSerializer),
            409: OpenApiResponse(description="Complaint is resolved or withdrawn."),
        },
        tags=["Complaints – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="reassign")
    def reassign(self, request: Request, pk: int = None) -> Response:
        serializer = ReassignSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        complaint = self.get_lifecycle_service().reassign(
            pk, data["assignee_id"], data["assignee_role"], request.user, data["reason"],
        )
        return self._detail_response(complaint)

    @extend_schema(
        summary="Escalate manually",
        request=EscalateSerializer,
        responses={200: OpenApiResponse(response=ComplaintDetailSerializer)},
        tags=["Complaints – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="escalate")
    def escalate(self, request: Request, pk: int = None) -> Response:
        serializer = EscalateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        complaint = self.get_lifecycle_service().escalate(
            pk, request.user, data["reason"], data["level"],
        )
        return self._detail_response(complaint)

    @extend_schema(
        summary="Admin override",
        description="REOPEN, FORCE_RESOLVE or FORCE_REJECT.",
        request=OverrideSerializer,
        responses={200: OpenApiResponse(response=ComplaintDetailSerializer)},
        tags=["Complaints – Admin"],
    )
    @action(detail=True, methods=["post"], url_path="override")
    def override(self, request: Request, pk: int = None) -> Response:
        serializer = OverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        complaint = self.get_lifecycle_service().override(
            pk, data["action"], request.user, data["reason"],
        )
        return self._detail_response(complaint)

    # ── Officer / Supervisor @actions ────────────────────────────────

    @extend_schema(
        summary="Submit resolution for verification",
        request=ResolutionSubmitSerializer,
        responses={
            200: OpenApiResponse(response=ComplaintDetailSerializer),
            409: OpenApiResponse(description="Wrong status, missing image or no supervisor available."),
        },
        tags=["Complaints – Officer"],
    )
    @action(detail=True, methods=["post"], url_path="submit-resolution")
    def submit_resolution(self, request: Request, pk: int = None) -> Response:
        serializer = ResolutionSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        complaint = self.get_lifecycle_service().submit_resolution(
            pk, request.user, data["images"], data["remarks"],
        )
        return self._detail_response(complaint)

    @extend_schema(
        summary="Verify resolution",
        request=ReviewSerializer,
        responses={200: OpenApiResponse(response=ComplaintDetailSerializer)},
        tags=["Complaints – Supervisor"],
    )
    @action(detail=True, methods=["post"], url_path="verify")
    def verify(self, request: Request, pk: int = None) -> Response:
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = self.get_lifecycle_service().supervisor_verify(
            pk, request.user, serializer.validated_data["remarks"],
        )
        return self._detail_response(complaint)

    @extend_schema(
        summary="Reject resolution (send back to officer)",
        request=ReviewSerializer,
        responses={200: OpenApiResponse(response=ComplaintDetailSerializer)},
        tags=["Complaints – Supervisor"],
    )
    @action(detail=True, methods=["post"], url_path="reject")
    def reject(self, request: Request, pk: int = None) -> Response:
        serializer = ReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = self.get_lifecycle_service().supervisor_reject(
            pk, request.user, serializer.validated_data["remarks"],
        )
        return self._detail_response(complaint)

    @extend_schema(
        summary="Assign an officer",
        request=AssignOfficerSerializer,
        responses={200: OpenApiResponse(response=ComplaintDetailSerializer)},
        tags=["Complaints – Supervisor"],
    )
    @action(detail=True, methods=["post"], url_path="assign-officer")
    def assign_officer(self, request: Request, pk: int = None) -> Response:
        serializer = AssignOfficerSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        complaint = self.get_lifecycle_service().supervisor_assign_officer(
            pk, serializer.validated_data["officer_id"], request.user,
        )
        return self._detail_response(complaint)

    # ── Citizen @actions ─────────────────────────────────────────────

    @extend_schema(
        summary="Withdraw complaint",
        request=None,
        responses={
            200: OpenApiResponse(response=ComplaintDetailSerializer),
            409: OpenApiResponse(description="Complaint already in progress or closed."),
        },
        tags=["Complaints – Citizen"],
    )
    @action(detail=True, methods=["post"], url_path="withdraw")
    def withdraw(self, request: Request, pk: int = None) -> Response:
        complaint = self.get_lifecycle_service().citizen_withdraw(pk, request.user)
        return self._detail_response(complaint)

    @extend_schema(
        summary="Add a comment",
        request=CommentCreateSerializer,
        responses={201: OpenApiResponse(response=ComplaintCommentSerializer)},
        tags=["Complaints – Citizen"],
    )
    @action(detail=True, methods=["post"], url_path="comments")
    def comments(self, request: Request, pk: int = None) -> Response:
        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = self.get_lifecycle_service().add_comment(
            pk, request.user, serializer.validated_data["text"],
        )
        return Response(ComplaintCommentSerializer(comment).data, status=status.HTTP_201_CREATED)

    # ── Read-side @actions ───────────────────────────────────────────

    @extend_schema(
        summary="Complaint timeline",
        description="Filing, status changes, SLA events and comments, newest first.",
        responses={200: OpenApiResponse(response=TimelineEventSerializer(many=True))},
        tags=["Complaints"],
    )
    @action(detail=True, methods=["get"], url_path="timeline")
    def timeline(self, request: Request, pk: int = None) -> Response:
        events = self.get_query_service().get_timeline(pk, request.user)
        return Response(TimelineEventSerializer(events, many=True).data)

    @extend_schema(
        summary="Allowed next states",
        responses={200: OpenApiResponse(response=AllowedTransitionsSerializer)},
        tags=["Complaints"],
    )
    @action(detail=True, methods=["get"], url_path="transitions")
    def transitions(self, request: Request, pk: int = None) -> Response:
        service = self.get_query_service()
        complaint = service.get_complaint(pk, request.user)
        allowed = service.allowed_transitions_for(pk, request.user)
        payload = {"status": complaint.status, "allowed": list(allowed)}
        return Response(AllowedTransitionsSerializer(payload).data)


class ComplaintHistoryViewSet(viewsets.ViewSet):
    """
    Read-only status history of one complaint.

    Nested under ``/api/complaints/{complaint_pk}/history/``; visibility
    follows the parent complaint.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="List status history",
        description="Oldest first.  Append-only; entries are never edited.",
        responses={200: OpenApiResponse(response=ComplaintStatusHistorySerializer(many=True))},
        tags=["Complaints – History"],
    )
    def list(self, request: Request, complaint_pk: int = None) -> Response:
        entries = ComplaintQueryService().get_history(complaint_pk, request.user)
        return Response(ComplaintStatusHistorySerializer(entries, many=True).data)

    @extend_schema(
        summary="Retrieve a status history entry",
        responses={200: OpenApiResponse(response=ComplaintStatusHistorySerializer)},
        tags=["Complaints – History"],
    )
    def retrieve(self, request: Request, complaint_pk: int = None, pk: int = None) -> Response:
        entry = ComplaintQueryService().get_history_entry(complaint_pk, pk, request.user)
        return Response(ComplaintStatusHistorySerializer(entry).data)
