from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.api.schemas import ErrorResponseSerializer
from apps.api.utils import error_response, service_error_response
from apps.common import get_logger

from .commands import AddItemCommand, SetQuantityCommand, ToggleSavedCommand
from .container import build_cart_service
from .serializers import (
    AddItemSerializer,
    CartSnapshotSerializer,
    SavedItemSerializer,
    SetQuantitySerializer,
    ToggleSavedResponseSerializer,
    ToggleSavedSerializer,
)
from .session import Shopper

logger = get_logger(__name__).bind(component="carts", layer="view")


@extend_schema(tags=["Cart"])
class CartView(APIView):
    permission_classes = [AllowAny]
    service = build_cart_service()
    log = logger.bind(view="CartView")

    @extend_schema(
        summary="Get cart",
        description=(
            "Returns the shopper's cart. Guests get the cart kept in their session; "
            "signed-in users get their persisted cart."
        ),
        responses={200: CartSnapshotSerializer},
    )
    def get(self, request):
        snapshot = async_to_sync(self.service.get_cart)(Shopper.from_request(request))
        return Response(CartSnapshotSerializer(snapshot).data)

    @extend_schema(summary="Clear cart", responses={200: CartSnapshotSerializer})
    def delete(self, request):
        shopper = Shopper.from_request(request)
        snapshot = async_to_sync(self.service.clear)(shopper)
        self.log.info("Cart cleared", user_id=shopper.user_id)
        return Response(CartSnapshotSerializer(snapshot).data)


@extend_schema(tags=["Cart"])
class CartItemsView(APIView):
    permission_classes = [AllowAny]
    service = build_cart_service()
    log = logger.bind(view="CartItemsView")

    @extend_schema(
        summary="Add item",
        description=(
            "Adds a product variant or a combo. Adding an item that is already in "
            "the cart increments its quantity by one."
        ),
        request=AddItemSerializer,
        responses={
            201: CartSnapshotSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def post(self, request):
        serializer = AddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        command = AddItemCommand.from_raw(dict(serializer.validated_data))
        if command is None:
            return error_response("VALIDATION_ERROR", "Invalid cart item")
        snapshot, error = async_to_sync(self.service.add_item)(
            Shopper.from_request(request), command
        )
        if error:
            return service_error_response(error)
        return Response(
            CartSnapshotSerializer(snapshot).data, status=status.HTTP_201_CREATED
        )


@extend_schema(tags=["Cart"])
class CartItemDetailView(APIView):
    permission_classes = [AllowAny]
    service = build_cart_service()
    log = logger.bind(view="CartItemDetailView")

    @extend_schema(
        summary="Set line quantity",
        description="A quantity of zero or less removes the line.",
        parameters=[OpenApiParameter("line_id", str, OpenApiParameter.PATH)],
        request=SetQuantitySerializer,
        responses={
            200: CartSnapshotSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def patch(self, request, line_id: str):
        serializer = SetQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        command = SetQuantityCommand.from_raw(line_id, dict(serializer.validated_data))
        if command is None:
            return error_response("VALIDATION_ERROR", "Invalid quantity")
        snapshot, error = async_to_sync(self.service.set_quantity)(
            Shopper.from_request(request), command
        )
        if error:
            return service_error_response(error)
        return Response(CartSnapshotSerializer(snapshot).data)

    @extend_schema(
        summary="Remove line",
        parameters=[OpenApiParameter("line_id", str, OpenApiParameter.PATH)],
        responses={200: CartSnapshotSerializer},
    )
    def delete(self, request, line_id: str):
        snapshot = async_to_sync(self.service.remove_item)(
            Shopper.from_request(request), line_id
        )
        return Response(CartSnapshotSerializer(snapshot).data)


@extend_schema(tags=["Cart"])
class SavedItemsView(APIView):
    permission_classes = [AllowAny]
    service = build_cart_service()
    log = logger.bind(view="SavedItemsView")

    @extend_schema(summary="List saved items", responses={200: SavedItemSerializer(many=True)})
    def get(self, request):
        snapshot = async_to_sync(self.service.get_cart)(Shopper.from_request(request))
        return Response(SavedItemSerializer(snapshot.saved, many=True).data)

    @extend_schema(
        summary="Toggle saved item",
        description="Saves the product if it is not saved yet, otherwise removes it.",
        request=ToggleSavedSerializer,
        responses={
            200: ToggleSavedResponseSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
            404: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def post(self, request):
        serializer = ToggleSavedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        command = ToggleSavedCommand.from_raw(dict(serializer.validated_data))
        if command is None:
            return error_response("VALIDATION_ERROR", "Invalid product")
        snapshot, error = async_to_sync(self.service.toggle_saved)(
            Shopper.from_request(request), command
        )
        if error:
            return service_error_response(error)
        payload = {
            "productId": command.product_id,
            "saved": snapshot.is_saved(command.product_id),
            "items": SavedItemSerializer(snapshot.saved, many=True).data,
        }
        return Response(payload)
