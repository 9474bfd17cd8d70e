"""
Accounts app views.

All views follow the **Thin View** pattern: validate input via
serializers, delegate to the service layer, and return the result
wrapped in a DRF ``Response``.  **No business logic** resides here.

View Map
--------
- ``MeView``                — GET /me/
- ``AvailableOfficersView`` — GET /officers/
- ``UserViewSet``           — /users/  (list, retrieve, activate, deactivate)
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from .serializers import (
    ActivationSerializer,
    UserDetailSerializer,
    UserFilterSerializer,
    UserListSerializer,
)
from .services import UserAdministrationService


class MeView(APIView):
    """GET /api/accounts/me/ → the authenticated user's profile."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Current user",
        responses={200: OpenApiResponse(response=UserDetailSerializer)},
        tags=["Accounts"],
    )
    def get(self, request: Request) -> Response:
        return Response(UserDetailSerializer(request.user).data)


class AvailableOfficersView(APIView):
    """GET /api/accounts/officers/ → active officers a complaint can go to."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Available officers",
        description="Supervisors and admins.  Active officers ordered by name.",
        responses={200: OpenApiResponse(response=UserListSerializer(many=True))},
        tags=["Accounts"],
    )
    def get(self, request: Request) -> Response:
        officers = UserAdministrationService().list_available_officers(request.user)
        return Response(UserListSerializer(officers, many=True).data)


class UserViewSet(viewsets.ViewSet):
    """
    /api/accounts/users/

    Administrative user management.  Admin-only, enforced by
    ``UserAdministrationService``.
    """

    permission_classes = [IsAuthenticated]

    def get_service(self) -> UserAdministrationService:
        return UserAdministrationService()

    @extend_schema(
        summary="List users",
        parameters=[UserFilterSerializer],
        responses={200: OpenApiResponse(response=UserListSerializer(many=True))},
        tags=["Accounts"],
    )
    def list(self, request: Request) -> Response:
        filters = UserFilterSerializer(data=request.query_params)
        filters.is_valid(raise_exception=True)
        users = self.get_service().list_users(request.user, **filters.validated_data)
        return Response(UserListSerializer(users, many=True).data)

    @extend_schema(
        summary="Retrieve a user",
        responses={200: OpenApiResponse(response=UserDetailSerializer)},
        tags=["Accounts"],
    )
    def retrieve(self, request: Request, pk: str = None) -> Response:
        user = self.get_service().get_user(int(pk), request.user)
        return Response(UserDetailSerializer(user).data)

    def _set_active(self, request: Request, pk: str, active: bool) -> Response:
        serializer = ActivationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = self.get_service().set_active(
            int(pk), active, request.user, serializer.validated_data["reason"],
        )
        return Response(UserDetailSerializer(user).data)

    @extend_schema(
        summary="Activate a user",
        request=ActivationSerializer,
        responses={200: OpenApiResponse(response=UserDetailSerializer)},
        tags=["Accounts"],
    )
    @action(detail=True, methods=["patch"], url_path="activate")
    def activate(self, request: Request, pk: str = None) -> Response:
        return self._set_active(request, pk, True)

    @extend_schema(
        summary="Deactivate a user",
        description="Deactivated users can no longer receive assignments.",
        request=ActivationSerializer,
        responses={200: OpenApiResponse(response=UserDetailSerializer)},
        tags=["Accounts"],
    )
    @action(detail=True, methods=["patch"], url_path="deactivate")
    def deactivate(self, request: Request, pk: str = None) -> Response:
        return self._set_active(request, pk, False)
