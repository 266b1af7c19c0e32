from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from .serializers import (
    BillSerializer,
    BillListSerializer,
    BillCreateSerializer,
    BillFilterSerializer,
    PaymentInputSerializer,
    BillCancelSerializer,
    BillRefundSerializer,
)
from .services import (
    finalize_bill,
    apply_payment,
    cancel_bill,
    refund_bill_items,
    get_bill,
    list_bills,
)


class BillPagination(PageNumberPagination):
    """Custom pagination for bills."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class BillViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for bills.

    list: Filtered bills, newest first
    retrieve: A bill with its lines, payments and refunds
    create: Finalize a cart into a completed bill
    payments: Apply a payment
    cancel: Cancel an unpaid bill
    refund: Refund units of one or more lines

    Bills are never updated or deleted through the API; every mutation goes
    through the settlement services. Domain errors are rendered by
    ``billing_exception_handler``.
    """

    serializer_class = BillSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = BillPagination

    def get_queryset(self):
        """Filter bills using input serializer validation."""
        if self.action != 'list':
            return list_bills()

        filter_serializer = BillFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        return list_bills(
            status=params.get('status'),
            payment_status=params.get('payment_status'),
            customer_id=params.get('customer'),
            cashier=params.get('cashier'),
            date_from=params.get('date_from'),
            date_to=params.get('date_to'),
        )

    def get_serializer_class(self):
        if self.action == 'list':
            return BillListSerializer
        return BillSerializer

    def get_object(self):
        # Missing bills surface as bill_not_found, not DRF's generic 404
        return get_bill(bill_id=self.kwargs['pk'])

    @extend_schema(parameters=[BillFilterSerializer])
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    @extend_schema(request=BillCreateSerializer, responses={201: BillSerializer})
    def create(self, request):
        """
        Finalize a bill.

        POST /api/bills/
        """
        serializer = BillCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        bill = finalize_bill(
            customer_id=data['customer_id'],
            items=[dict(item) for item in data['items']],
            cashier=data.get('cashier') or request.user.get_username(),
            payment_method=data['payment_method'],
            payment_details=[dict(payment) for payment in data.get('payment_details', [])],
            loyalty_points_used=data['loyalty_points_used'],
            notes=data['notes'],
            delivery_charge=data['delivery_charge'],
        )

        return Response(
            BillSerializer(get_bill(bill_id=bill.id)).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(request=PaymentInputSerializer, responses=BillSerializer)
    @action(detail=True, methods=['post'])
    def payments(self, request, pk=None):
        """
        Apply a payment to a completed bill.

        POST /api/bills/{id}/payments/
        Body: {"method": "upi", "amount": "400.00", "reference": "UPI-123"}
        """
        serializer = PaymentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill = apply_payment(
            bill_id=pk,
            method=serializer.validated_data['method'],
            amount=serializer.validated_data['amount'],
            reference=serializer.validated_data['reference'],
        )

        return Response(BillSerializer(get_bill(bill_id=bill.id)).data)

    @extend_schema(request=BillCancelSerializer, responses=BillSerializer)
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """
        Cancel a bill that isn't paid in full.

        POST /api/bills/{id}/cancel/
        Body: {"reason": "Customer walked out"}
        """
        serializer = BillCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill = cancel_bill(bill_id=pk, reason=serializer.validated_data['reason'])

        return Response(BillSerializer(get_bill(bill_id=bill.id)).data)

    @extend_schema(request=BillRefundSerializer, responses=BillSerializer)
    @action(detail=True, methods=['post'])
    def refund(self, request, pk=None):
        """
        Refund units of one or more lines of a paid bill.

        POST /api/bills/{id}/refund/
        Body: {"items": [{"item_id": "...", "quantity": 1}], "reason": "Damaged"}
        """
        serializer = BillRefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bill = refund_bill_items(
            bill_id=pk,
            items=[dict(item) for item in serializer.validated_data['items']],
            reason=serializer.validated_data['reason'],
        )

        return Response(BillSerializer(get_bill(bill_id=bill.id)).data)
