"""
Views for the tickets APIs.
"""

import logging

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated
from rest_framework.pagination import PageNumberPagination

from users.serializers import UserNestedSerializer

from . import assignment
from . import serializers
from . import services
from .models import Ticket
from .workflows import (
    ConcurrentModificationError,
    InvalidTransitionError,
    NoEligibleAssigneeError,
    TicketLifecycleError,
    TicketNotFoundError,
    TicketValidationError,
    UnauthorizedActionError,
    parse_action,
)
from .filters import TicketFilter

logger = logging.getLogger(__name__)


# Order matters: subclasses before their parents
ERROR_STATUS = [
    (TicketNotFoundError, status.HTTP_404_NOT_FOUND),
    (UnauthorizedActionError, status.HTTP_403_FORBIDDEN),
    (ConcurrentModificationError, status.HTTP_409_CONFLICT),
    (TicketValidationError, status.HTTP_400_BAD_REQUEST),
    (NoEligibleAssigneeError, status.HTTP_400_BAD_REQUEST),
    (InvalidTransitionError, status.HTTP_400_BAD_REQUEST),
]


def lifecycle_error_response(error: TicketLifecycleError) -> Response:
    """Translates a domain error into the API's error body."""
    err_status = next(
        (
            code
            for error_class, code in ERROR_STATUS
            if isinstance(error, error_class)
        ),
        status.HTTP_400_BAD_REQUEST,
    )
    body = {"error": str(error), "code": error.code}
    if isinstance(error, TicketValidationError):
        body["violations"] = error.violations
    return Response(body, status=err_status)


class StandardResultsSetPagination(PageNumberPagination):
    """Provides pagination for output."""

    page_size = 50
    page_size_query_param = "page_size"
    max_page_size = 100


class TicketViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """View for managing tickets APIs. State changes go through actions."""

    queryset = Ticket.objects.active()
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination
    filterset_class = TicketFilter

    def get_queryset(self):
        """
        Implement data segregation: reporters see their own tickets,
        approvers see tickets at the locations they cover.
        """
        queryset = (
            super()
            .get_queryset()
            .select_related(
                "production_unit",
                "equipment",
                "failure_mode",
                "created_by",
                "assigned_to",
            )
        )
        visibility_filter = services.get_ticket_visibility_filter(
            self.request.user
        )
        return queryset.filter(visibility_filter).distinct().order_by("-id")

    def get_serializer_class(self):
        """Return the serializer class for request based on action."""
        if self.action in ("list", "pending"):
            return serializers.TicketListSerializer
        if self.action == "create":
            return serializers.TicketCreateSerializer
        if self.action == "destroy":
            return serializers.DeleteSerializer
        if self.action == "history":
            return serializers.TicketStatusHistorySerializer
        if self.action == "comments":
            if self.request.method == "POST":
                return serializers.TicketCommentCreateSerializer
            return serializers.TicketCommentSerializer
        if self.action == "evidence":
            return serializers.TicketEvidenceCreateSerializer
        if self.action == "assignees":
            return UserNestedSerializer
        if self.action == "transition":
            action_name = self.kwargs.get("action_name")
            try:
                action_type = parse_action(action_name)
                return serializers.ACTION_SERIALIZERS[action_type]
            except InvalidTransitionError:
                return serializers.ActionPayloadSerializer

        return serializers.TicketDetailSerializer

    def _detail_response(self, ticket, status_code=status.HTTP_200_OK):
        """Serializes a ticket with the caller's standing and actions."""
        context = self.get_serializer_context()
        context.update(
            services.get_ticket_context(ticket=ticket, user=self.request.user)
        )
        return Response(
            serializers.TicketDetailSerializer(ticket, context=context).data,
            status=status_code,
        )

    def retrieve(self, request, *args, **kwargs):
        """Retrieve a single ticket with contextual data."""
        return self._detail_response(self.get_object())

    # --- Core CRUD Actions ---

    def create(self, request, *args, **kwargs):
        """
        Report a new finding. Any authenticated user may report.

        Returns:
        201 Created: Ticket created in status 'open'
        400 Bad Request: Invalid data
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            ticket = services.create_ticket(
                user=request.user, **serializer.validated_data
            )
        except TicketLifecycleError as e:
            return lifecycle_error_response(e)
        return self._detail_response(ticket, status.HTTP_201_CREATED)

    def destroy(self, request, *args, **kwargs):
        """
        Soft-delete a ticket.
        Permission: supervisor (level 3) or above at the location.
        A reason is required.
        """
        ticket = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            services.delete_ticket(
                ticket_id=ticket.id,
                user=request.user,
                reason=serializer.validated_data.get("reason"),
            )
        except TicketLifecycleError as e:
            return lifecycle_error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # --- Lifecycle ---

    @extend_schema(
        parameters=[
            OpenApiParameter(
                "action_name",
                OpenApiTypes.STR,
                OpenApiParameter.PATH,
                enum=[name.value for name in serializers.ACTION_SERIALIZERS],
            )
        ]
    )
    @action(
        detail=True,
        methods=["post"],
        url_path=r"actions/(?P<action_name>[a-z-]+)",
    )
    def transition(self, request, pk=None, action_name=None):
        """
        Apply a lifecycle action (accept, plan, start, reject, finish,
        escalate, approve-review, reopen, approve-close, reassign, delete).
        Returns the refreshed ticket.
        """
        ticket = self.get_object()
        try:
            action_type = parse_action(action_name)
        except InvalidTransitionError as e:
            return lifecycle_error_response(e)

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            updated_ticket = services.apply_action(
                ticket_id=ticket.id,
                action=action_type,
                user=request.user,
                payload=serializer.to_payload(),
                expected_version=serializer.validated_data.get(
                    "expected_version"
                ),
            )
        except TicketLifecycleError as e:
            logger.info(
                "Ticket %s: %s by user %s refused (%s)",
                ticket.id,
                action_name,
                request.user.id,
                e.code,
            )
            return lifecycle_error_response(e)

        if updated_ticket.is_deleted:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return self._detail_response(updated_ticket)

    @action(detail=True, methods=["get"])
    def history(self, request, pk=None):
        """Status and assignment timeline, oldest first."""
        ticket = self.get_object()
        entries = ticket.status_history.select_related("changed_by", "to_user")
        serializer = self.get_serializer(entries, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=["get", "post"])
    def comments(self, request, pk=None):
        """List comments, or add one (participants only)."""
        ticket = self.get_object()

        if request.method == "GET":
            comments = ticket.comments.select_related("user")
            return Response(
                serializers.TicketCommentSerializer(comments, many=True).data
            )

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            comment = services.add_comment(
                ticket_id=ticket.id,
                user=request.user,
                comment=serializer.validated_data["comment"],
            )
        except TicketLifecycleError as e:
            return lifecycle_error_response(e)
        return Response(
            serializers.TicketCommentSerializer(comment).data,
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get", "post"])
    def evidence(self, request, pk=None):
        """List images, or attach image metadata; 'after' images unlock
        finishing."""
        ticket = self.get_object()

        if request.method == "GET":
            images = ticket.images.select_related("uploaded_by")
            return Response(
                serializers.TicketImageSerializer(images, many=True).data
            )

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            image = services.add_evidence(
                ticket_id=ticket.id,
                user=request.user,
                **serializer.validated_data,
            )
        except TicketLifecycleError as e:
            return lifecycle_error_response(e)
        return Response(
            serializers.TicketImageSerializer(image).data,
            status=status.HTTP_201_CREATED,
        )

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"evidence/(?P<image_id>[0-9]+)",
    )
    def remove_evidence(self, request, pk=None, image_id=None):
        """Remove an image attached by mistake (participants only)."""
        ticket = self.get_object()
        try:
            services.remove_evidence(
                ticket_id=ticket.id, user=request.user, image_id=image_id
            )
        except TicketLifecycleError as e:
            return lifecycle_error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"])
    def pending(self, request):
        """
        The caller's open work: tickets they reported or that sit at a
        location they cover, not yet finished, closed or finally rejected.
        """
        queryset = self.filter_queryset(self.get_queryset()).filter(
            services.get_pending_tickets_filter(request.user)
        )
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(queryset, many=True)
        return Response(serializer.data)

    @extend_schema(
        parameters=[
            OpenApiParameter(
                "escalation_only",
                OpenApiTypes.BOOL,
                OpenApiParameter.QUERY,
                description="Only supervisors (level 3), for escalation.",
            )
        ]
    )
    @action(detail=True, methods=["get"])
    def assignees(self, request, pk=None):
        """Users who may be assigned (or escalated to) at the location."""
        ticket = self.get_object()
        escalation_only = request.query_params.get(
            "escalation_only", ""
        ).lower() in ("1", "true", "yes")
        candidates = assignment.get_eligible_assignees(
            ticket.production_unit, escalation_only=escalation_only
        )
        return Response(UserNestedSerializer(candidates, many=True).data)
