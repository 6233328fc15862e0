"""
Views for the reference data APIs.
"""

from rest_framework import mixins, viewsets
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated

from .models import FailureMode
from .serializers import FailureModeSerializer


class FailureModeViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Active failure modes, the valid choices when finishing a ticket."""

    queryset = FailureMode.objects.filter(is_active=True).order_by("name")
    serializer_class = FailureModeSerializer
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    filter_backends = []
