from asgiref.sync import async_to_sync
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from apps.api.schemas import ErrorResponseSerializer
from apps.api.utils import service_error_response
from apps.carts.session import Shopper
from apps.common import get_logger

from .container import build_session_service
from .serializers import (
    DetailResponseSerializer,
    LoginResponseSerializer,
    LogoutRequestSerializer,
)

logger = get_logger(__name__).bind(component="auth", layer="view")


@extend_schema(tags=["Auth"])
class LoginView(TokenObtainPairView):
    permission_classes = [AllowAny]
    service = build_session_service()
    log = logger.bind(view="LoginView")

    @extend_schema(
        summary="Login (JWT obtain pair)",
        description=(
            "Issues a JWT pair. A guest cart kept in the caller's session is merged "
            "into the user's cart; the outcome is reported under `cart`."
        ),
        responses={
            200: LoginResponseSerializer,
            401: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        try:
            serializer.is_valid(raise_exception=True)
        except TokenError as exc:
            raise InvalidToken(exc.args[0])
        user = serializer.user
        cart = async_to_sync(self.service.sign_in)(Shopper.from_request(request), user.id)
        payload = dict(serializer.validated_data)
        payload["cart"] = cart
        self.log.info("Login succeeded", user_id=user.id, merged=cart["merged"])
        return Response(payload, status=status.HTTP_200_OK)


@extend_schema(tags=["Auth"], summary="Refresh JWT")
class RefreshView(TokenRefreshView):
    permission_classes = [AllowAny]


@extend_schema(tags=["Auth"])
class LogoutView(APIView):
    permission_classes = [IsAuthenticated]
    service = build_session_service()
    log = logger.bind(view="LogoutView")

    @extend_schema(
        summary="Logout",
        description="Blacklists the refresh token and resets the session cart.",
        request=LogoutRequestSerializer,
        responses={
            200: DetailResponseSerializer,
            400: OpenApiResponse(response=ErrorResponseSerializer),
        },
    )
    def post(self, request):
        error = async_to_sync(self.service.sign_out)(
            Shopper.from_request(request), request.data.get("refresh")
        )
        if error:
            return service_error_response(error)
        return Response({"detail": "Logged out"}, status=status.HTTP_200_OK)
