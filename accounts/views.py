from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.throttling import ScopedRateThrottle
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.serializers import TokenRefreshSerializer

from accounts.serializers import TenantAwareTokenObtainPairSerializer
from core.models import Membership

REFRESH_COOKIE_NAME = getattr(settings, "REFRESH_COOKIE_NAME", "refresh_token")
COOKIE_KW = dict(
    httponly=True,
    samesite=getattr(settings, "REFRESH_COOKIE_SAMESITE", "Lax"),
    secure=getattr(settings, "REFRESH_COOKIE_SECURE", False),
    path=getattr(settings, "REFRESH_COOKIE_PATH", "/"),
)


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth"

    def post(self, request):
        token_ser = TenantAwareTokenObtainPairSerializer(data=request.data, context={"request": request})
        token_ser.is_valid(raise_exception=True)
        refresh = RefreshToken.for_user(token_ser.user)
        resp = Response(token_ser.validated_data, status=200)
        resp.set_cookie(REFRESH_COOKIE_NAME, str(refresh), **COOKIE_KW)
        return resp


class RefreshCookieView(APIView):
    """
    Lee el refresh desde la cookie HttpOnly y devuelve un nuevo access.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "auth"

    def post(self, request, *args, **kwargs):
        data = {"refresh": request.data.get("refresh") or request.COOKIES.get(REFRESH_COOKIE_NAME)}
        if not data["refresh"]:
            return Response(
                {"detail": "Falta refresh token (cookie no encontrada). Haz login primero."},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        ser = TokenRefreshSerializer(data=data)
        ser.is_valid(raise_exception=True)
        return Response(ser.validated_data, status=status.HTTP_200_OK)


class LogoutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        resp = Response({"ok": True}, status=200)
        resp.delete_cookie(REFRESH_COOKIE_NAME, path=COOKIE_KW["path"])
        return resp


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        mems = Membership.objects.select_related("organization").filter(user=user)
        orgs = [
            {
                "id": str(m.organization.id),
                "name": m.organization.name,
                "slug": m.organization.slug,
                "role": m.role,
            }
            for m in mems
        ]
        return Response({
            "email": user.email,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "organizations": orgs,
        })
