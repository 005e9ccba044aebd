import uuid

from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.api.schemas import ErrorResponseSerializer
from apps.carts.session import Shopper
from apps.common import get_logger

from .commands import CheckoutCommand
from .container import (
    build_cancellation_service,
    build_checkout_service,
    build_order_query_service,
)
from .serializers import (
    CheckoutRequestSerializer,
    OrderDetailSerializer,
    OrderSerializer,
    PlacedOrderSerializer,
)

logger = get_logger(__name__).bind(component="orders", layer="view")

ORDER_ID_PARAM = OpenApiParameter("order_id", uuid.UUID, OpenApiParameter.PATH)


@extend_schema(tags=["Orders"])
class CheckoutView(APIView):
    permission_classes = [AllowAny]
    service = build_checkout_service()
    log = logger.bind(view="CheckoutView")

    @extend_schema(
        summary="Place order",
        description=(
            "Creates a pending order from the shopper's cart, queues the inventory "
            "adjustments and returns the hand-off link for the order summary. The "
            "cart is cleared on success."
        ),
        request=CheckoutRequestSerializer,
        responses={
            201: PlacedOrderSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            409: OpenApiResponse(response=ErrorResponseSerializer),
            500: OpenApiResponse(response=ErrorResponseSerializer),
            503: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def post(self, request):
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        command = CheckoutCommand.from_raw(dict(serializer.validated_data))
        shopper = Shopper.from_request(request)
        placed = async_to_sync(self.service.checkout)(
            shopper, command.form, messaging_available=command.messaging_available
        )
        self.log.info(
            "Checkout completed", order_id=str(placed.order_id), user_id=shopper.user_id
        )
        return Response(PlacedOrderSerializer(placed).data, status=status.HTTP_201_CREATED)


@extend_schema(tags=["Orders"])
class OrderListView(APIView):
    permission_classes = [IsAuthenticated]
    service = build_order_query_service()

    @extend_schema(summary="List my orders", responses={200: OrderSerializer(many=True)})
    def get(self, request):
        orders = async_to_sync(self.service.list_orders)(request.user.id)
        return Response(OrderSerializer(orders, many=True).data)


@extend_schema(tags=["Orders"])
class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]
    service = build_order_query_service()

    @extend_schema(
        summary="Get my order",
        parameters=[ORDER_ID_PARAM],
        responses={
            200: OrderDetailSerializer,
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def get(self, request, order_id: uuid.UUID):
        order = async_to_sync(self.service.get_order)(order_id, request.user.id)
        return Response(OrderDetailSerializer(order).data)


@extend_schema(tags=["Orders"])
class OrderCancelView(APIView):
    permission_classes = [IsAuthenticated]
    service = build_cancellation_service()
    log = logger.bind(view="OrderCancelView")

    @extend_schema(
        summary="Cancel my order",
        description=(
            "Cancels the order while it is still pending. Cancelling an order that "
            "is already cancelled returns it unchanged."
        ),
        parameters=[ORDER_ID_PARAM],
        request=None,
        responses={
            200: OrderDetailSerializer,
            409: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def post(self, request, order_id: uuid.UUID):
        order = async_to_sync(self.service.cancel)(order_id, request.user.id)
        return Response(OrderDetailSerializer(order).data)
