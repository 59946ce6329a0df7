# apps/api/v1/views/stock_releases.py
"""
ViewSet for stock releases and their workflow actions.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from apps.api.permissions import IsStockHandler, IsStoreManager
from apps.api.v1.serializers.stock_releases import (
    ReleaseActionSerializer,
    StockReleaseCreateSerializer,
    StockReleaseListSerializer,
    StockReleaseSerializer,
    StockReleaseUpdateSerializer,
    TransitionSerializer,
)
from apps.inventory.services import get_location, get_product
from apps.stock_releases.models import StockRelease
from apps.stock_releases.services import ReleaseLineInput, StockReleaseService
from .base import service_error_response


def _line_inputs(lines):
    return [
        ReleaseLineInput(
            product=get_product(line['product']),
            quantity=line['quantity'],
            batch_number=line.get('batch_number', ''),
            serial_number=line.get('serial_number', ''),
            notes=line.get('notes', ''),
        )
        for line in lines
    ]


@extend_schema_view(
    list=extend_schema(tags=['stock-releases'], summary='List stock releases'),
    retrieve=extend_schema(tags=['stock-releases'], summary='Get stock release details'),
    create=extend_schema(
        tags=['stock-releases'], summary='Request a stock release',
        request=StockReleaseCreateSerializer, responses={201: StockReleaseSerializer},
    ),
    partial_update=extend_schema(
        tags=['stock-releases'], summary='Edit a pending stock release',
        request=StockReleaseUpdateSerializer, responses={200: StockReleaseSerializer},
    ),
    destroy=extend_schema(tags=['stock-releases'], summary='Delete a pending or cancelled stock release'),
)
class StockReleaseViewSet(viewsets.ModelViewSet):
    """
    Stock release requests.

    Workflow: PENDING -> APPROVED -> RELEASED -> COMPLETED (on receipt);
    consumption types complete directly on release. Status changes only
    happen through the action endpoints.
    """
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'release_type', 'from_location', 'to_location']
    search_fields = ['release_number', 'reference_number', 'notes']
    ordering_fields = ['created_at', 'release_number']
    ordering = ['-created_at', '-id']

    def get_queryset(self):
        return StockRelease.objects.select_related(
            'from_location', 'to_location'
        ).prefetch_related('items__product').all()

    def get_serializer_class(self):
        if self.action == 'list':
            return StockReleaseListSerializer
        return StockReleaseSerializer

    def _service(self, request):
        return StockReleaseService(request.user)

    def _respond(self, release, request, code=status.HTTP_200_OK):
        release = self._service(request).get(release.pk)
        return Response(StockReleaseSerializer(release, context={'request': request}).data, status=code)

    def create(self, request, *args, **kwargs):
        serializer = StockReleaseCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            to_location = get_location(data['to_location']) if data['to_location'] is not None else None
            release = self._service(request).create(
                release_type=data['release_type'],
                from_location=get_location(data['from_location']),
                to_location=to_location,
                items=_line_inputs(data['items']),
                reference_type=data['reference_type'],
                reference_id=data.get('reference_id'),
                reference_number=data['reference_number'],
                notes=data['notes'],
            )
        except DjangoValidationError as e:
            return service_error_response(e)

        return self._respond(release, request, status.HTTP_201_CREATED)

    def partial_update(self, request, *args, **kwargs):
        serializer = StockReleaseUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        changes = {}
        try:
            if 'release_type' in data:
                changes['release_type'] = data['release_type']
            if 'to_location' in data:
                to_location = data['to_location']
                changes['to_location'] = get_location(to_location) if to_location is not None else None
            if 'items' in data:
                changes['items'] = _line_inputs(data['items'])
            if 'notes' in data:
                changes['notes'] = data['notes']
            release = self._service(request).update(kwargs['pk'], **changes)
        except DjangoValidationError as e:
            return service_error_response(e)

        return self._respond(release, request)

    def destroy(self, request, *args, **kwargs):
        try:
            self._service(request).delete(kwargs['pk'])
        except DjangoValidationError as e:
            return service_error_response(e)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ===== WORKFLOW ACTIONS =====

    @extend_schema(tags=['stock-releases'], summary='Approve a pending release', request=TransitionSerializer)
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsStoreManager])
    def approve(self, request, pk=None):
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            release = self._service(request).approve(pk, notes=serializer.validated_data['notes'])
        except DjangoValidationError as e:
            return service_error_response(e)
        return self._respond(release, request)

    @extend_schema(tags=['stock-releases'], summary='Release stock from the source location', request=ReleaseActionSerializer)
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsStockHandler])
    def release(self, request, pk=None):
        """Take stock out of the source; `lines` optionally overrides per-line quantities."""
        serializer = ReleaseActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lines = serializer.validated_data.get('lines')
        overrides = [(line['item'], line['quantity']) for line in lines] if lines else None

        try:
            release = self._service(request).release(pk, line_overrides=overrides)
        except DjangoValidationError as e:
            return service_error_response(e)
        return self._respond(release, request)

    @extend_schema(tags=['stock-releases'], summary='Receive a branch transfer and complete it', request=TransitionSerializer)
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsStockHandler])
    def receive(self, request, pk=None):
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            release = self._service(request).receive(pk, notes=serializer.validated_data['notes'])
        except DjangoValidationError as e:
            return service_error_response(e)
        return self._respond(release, request)

    @extend_schema(tags=['stock-releases'], summary='Cancel a pending or approved release', request=TransitionSerializer)
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsStoreManager])
    def cancel(self, request, pk=None):
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            release = self._service(request).cancel(pk, notes=serializer.validated_data['notes'])
        except DjangoValidationError as e:
            return service_error_response(e)
        return self._respond(release, request)
