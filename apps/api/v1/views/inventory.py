# apps/api/v1/views/inventory.py
"""
Views for inventory: stock levels, the movement ledger and stock operations.

Records and movements are read-only resources; quantities only change through
the operation endpoints, which call the inventory services.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.api.permissions import IsStockHandler
from apps.api.v1.serializers.inventory import (
    AdjustRecordSerializer,
    AdjustSerializer,
    BulkTransferSerializer,
    InventoryRecordSerializer,
    ReceivePurchaseSerializer,
    StockCountSerializer,
    StockMovementSerializer,
    TransferSerializer,
    adjustment_result_data,
    transfer_line_data,
)
from apps.inventory.models import InventoryRecord, StockMovement
from apps.inventory.services import (
    AdjustmentService,
    InventoryRecordStore,
    TransferService,
    get_location,
    get_product,
)
from .base import service_error_response


@extend_schema_view(
    list=extend_schema(tags=['inventory'], summary='List stock levels'),
    retrieve=extend_schema(tags=['inventory'], summary='Get a stock level'),
)
class InventoryRecordViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Stock levels per product and location.

    Read-only; use the adjust/transfer/receive endpoints to change quantities.
    """
    serializer_class = InventoryRecordSerializer

    def get_queryset(self):
        return InventoryRecord.objects.select_related('product', 'location').all()
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['product', 'location']
    search_fields = ['product__product_code', 'product__sku', 'product__name', 'location__location_code']
    ordering_fields = ['quantity', 'available_quantity', 'updated_at']
    ordering = ['location_id', 'product_id']

    @extend_schema(
        tags=['inventory'],
        summary='Records at or below their low-stock threshold',
        parameters=[OpenApiParameter('location', int, description='Limit to one location')],
        responses={200: InventoryRecordSerializer(many=True)},
    )
    @action(detail=False, methods=['get'], url_path='low-stock')
    def low_stock(self, request):
        location = None
        location_id = request.query_params.get('location')
        try:
            if location_id:
                location = get_location(location_id)
        except DjangoValidationError as e:
            return service_error_response(e)

        records = InventoryRecordStore().low_stock(location=location)
        serializer = self.get_serializer(records, many=True)
        return Response(serializer.data)

    @extend_schema(
        tags=['inventory'],
        summary='Adjust this stock level',
        request=AdjustRecordSerializer,
    )
    @action(detail=True, methods=['post'], permission_classes=[IsAuthenticated, IsStockHandler])
    def adjust(self, request, pk=None):
        """Apply a signed quantity change to this record."""
        serializer = AdjustRecordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = AdjustmentService(request.user).adjust_record(
                pk,
                data['quantity'],
                intent=data['intent'],
                reference_type=data['reference_type'],
                reference_id=data.get('reference_id'),
                reference_number=data['reference_number'],
                notes=data['notes'],
            )
        except DjangoValidationError as e:
            return service_error_response(e)

        return Response(adjustment_result_data(result, {'request': request}), status=status.HTTP_201_CREATED)


@extend_schema_view(
    list=extend_schema(tags=['inventory'], summary='List stock movements (newest first)'),
    retrieve=extend_schema(tags=['inventory'], summary='Get a stock movement'),
)
class StockMovementViewSet(viewsets.ReadOnlyModelViewSet):
    """Append-only movement ledger."""
    serializer_class = StockMovementSerializer

    def get_queryset(self):
        return StockMovement.objects.select_related('product', 'location', 'performed_by').all()
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['product', 'location', 'movement_type', 'reference_type', 'reference_id']
    search_fields = ['reference_number', 'notes', 'product__product_code']
    ordering_fields = ['created_at']
    ordering = ['-created_at', '-id']


class AdjustView(APIView):
    """POST /inventory/adjust/ - Signed adjustment at product + location."""
    permission_classes = [IsAuthenticated, IsStockHandler]

    @extend_schema(tags=['inventory'], summary='Adjust stock', request=AdjustSerializer)
    def post(self, request):
        serializer = AdjustSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = AdjustmentService(request.user).adjust(
                get_product(data['product']),
                get_location(data['location']),
                data['quantity'],
                intent=data['intent'],
                reference_type=data['reference_type'],
                reference_id=data.get('reference_id'),
                reference_number=data['reference_number'],
                notes=data['notes'],
                batch_number=data['batch_number'],
                serial_number=data['serial_number'],
            )
        except DjangoValidationError as e:
            return service_error_response(e)

        return Response(adjustment_result_data(result, {'request': request}), status=status.HTTP_201_CREATED)


class StockCountView(APIView):
    """POST /inventory/count/ - Set on-hand to a physically counted value."""
    permission_classes = [IsAuthenticated, IsStockHandler]

    @extend_schema(tags=['inventory'], summary='Record a stock count', request=StockCountSerializer)
    def post(self, request):
        serializer = StockCountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = AdjustmentService(request.user).count_stock(
                get_product(data['product']),
                get_location(data['location']),
                data['counted_quantity'],
                notes=data['notes'],
            )
        except DjangoValidationError as e:
            return service_error_response(e)

        code = status.HTTP_201_CREATED if result.movement else status.HTTP_200_OK
        return Response(adjustment_result_data(result, {'request': request}), status=code)


class TransferView(APIView):
    """POST /inventory/transfer/ - Move one product between locations."""
    permission_classes = [IsAuthenticated, IsStockHandler]

    @extend_schema(tags=['inventory'], summary='Transfer stock', request=TransferSerializer)
    def post(self, request):
        serializer = TransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            line = TransferService(request.user).transfer(
                get_product(data['product']),
                get_location(data['from_location']),
                get_location(data['to_location']),
                data['quantity'],
                notes=data['notes'],
            )
        except DjangoValidationError as e:
            return service_error_response(e)

        result = transfer_line_data(line, {'request': request})
        result['reference_number'] = line.reference_number
        return Response(result, status=status.HTTP_201_CREATED)


class BulkTransferView(APIView):
    """POST /inventory/bulk-transfer/ - Move several products, all or nothing."""
    permission_classes = [IsAuthenticated, IsStockHandler]

    @extend_schema(tags=['inventory'], summary='Transfer several products', request=BulkTransferSerializer)
    def post(self, request):
        serializer = BulkTransferSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            items = [(get_product(line['product']), line['quantity']) for line in data['items']]
            result = TransferService(request.user).bulk_transfer(
                get_location(data['from_location']),
                get_location(data['to_location']),
                items,
                notes=data['notes'],
            )
        except DjangoValidationError as e:
            return service_error_response(e)

        context = {'request': request}
        return Response({
            'reference_number': result.reference_number,
            'total_quantity': result.total_quantity,
            'lines': [transfer_line_data(line, context) for line in result.lines],
        }, status=status.HTTP_201_CREATED)


class ReceivePurchaseView(APIView):
    """POST /inventory/receive/ - Book purchase-order receipts into a location."""
    permission_classes = [IsAuthenticated, IsStockHandler]

    @extend_schema(tags=['inventory'], summary='Receive purchased stock', request=ReceivePurchaseSerializer)
    def post(self, request):
        serializer = ReceivePurchaseSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            lines = [
                (get_product(line['product']), line['quantity'], line['batch_number'])
                for line in data['lines']
            ]
            results = AdjustmentService(request.user).receive_purchase(
                get_location(data['location']),
                lines,
                reference_id=data.get('reference_id'),
                reference_number=data['reference_number'],
                notes=data['notes'],
            )
        except DjangoValidationError as e:
            return service_error_response(e)

        context = {'request': request}
        return Response(
            {'lines': [adjustment_result_data(r, context) for r in results]},
            status=status.HTTP_201_CREATED,
        )
