"""
Audit app views.

A single read endpoint over ``AuditRecorder``; admin-only, enforced in
the service layer.
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import AuditLogEntrySerializer, AuditTrailFilterSerializer
from .services import AuditRecorder


class AuditTrailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Query the audit trail",
        description="Newest first.  Admins only.",
        parameters=[AuditTrailFilterSerializer],
        responses={
            200: OpenApiResponse(response=AuditLogEntrySerializer(many=True)),
            403: OpenApiResponse(description="Caller is not an admin."),
        },
        tags=["Audit"],
    )
    def get(self, request: Request) -> Response:
        filters = AuditTrailFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        data = filters.validated_data
        entries = AuditRecorder().trail_for(
            request.user,
            actor_id=data.get("actor"),
            complaint_id=data.get("complaint"),
            role=data.get("role"),
            action=data.get("action"),
            start=data.get("start"),
            end=data.get("end"),
            limit=data["limit"],
        )
        return Response(AuditLogEntrySerializer(entries, many=True).data)
