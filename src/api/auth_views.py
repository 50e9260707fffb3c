"""Authentication API views with HttpOnly JWT cookies."""

import logging
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.middleware import csrf
from django.utils.decorators import method_decorator
from django.views.decorators.csrf import ensure_csrf_cookie
from rest_framework import permissions, status
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from api.v1.serializers import CustomTokenObtainPairSerializer
from core.envelope import ErrorCode, error_response, log_api_call, success_response

logger = logging.getLogger("vmax")


class SafeScopedRateThrottle(ScopedRateThrottle):
    """Scoped throttle that falls back to a strict default if scope config is missing."""

    def get_rate(self):
        try:
            return super().get_rate()
        except ImproperlyConfigured:
            logger.warning("Throttle scope '%s' not configured, applying strict default 5/min.", self.scope)
            return "5/min"


def _cookie_max_age(delta: timedelta) -> int:
    return int(delta.total_seconds())


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": getattr(settings, "JWT_AUTH_COOKIE_SECURE", not settings.DEBUG),
        "samesite": getattr(settings, "JWT_AUTH_COOKIE_SAMESITE", "Lax"),
        "path": getattr(settings, "JWT_AUTH_COOKIE_PATH", "/"),
        "domain": getattr(settings, "JWT_AUTH_COOKIE_DOMAIN", None),
    }


def _set_auth_cookies(response, *, access: str, refresh: str | None) -> None:
    options = _cookie_options()
    response.set_cookie(
        getattr(settings, "JWT_AUTH_COOKIE", "access_token"),
        access,
        max_age=_cookie_max_age(settings.SIMPLE_JWT["ACCESS_TOKEN_LIFETIME"]),
        **options,
    )
    if refresh:
        response.set_cookie(
            getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token"),
            refresh,
            max_age=_cookie_max_age(settings.SIMPLE_JWT["REFRESH_TOKEN_LIFETIME"]),
            **options,
        )


def _clear_auth_cookies(response) -> None:
    path = getattr(settings, "JWT_AUTH_COOKIE_PATH", "/")
    domain = getattr(settings, "JWT_AUTH_COOKIE_DOMAIN", None)
    response.delete_cookie(getattr(settings, "JWT_AUTH_COOKIE", "access_token"), path=path, domain=domain)
    response.delete_cookie(getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token"), path=path, domain=domain)


class CookieTokenObtainPairView(TokenObtainPairView):
    """Issue JWT and set HttpOnly auth cookies."""

    serializer_class = CustomTokenObtainPairSerializer
    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_burst"
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        validated = serializer.validated_data

        access = validated["access"]
        refresh = validated["refresh"]
        user = validated["user"]

        data = {"user": user}
        if getattr(settings, "JWT_RETURN_TOKENS_IN_BODY", False):
            data.update({"access": access, "refresh": refresh})

        response = success_response(data, message="Signed in")
        _set_auth_cookies(response, access=access, refresh=refresh)
        log_api_call("auth.login", response.status_code, resource_id=user["id"], user=serializer.user, request=request)
        return response


class CookieTokenRefreshView(TokenRefreshView):
    """Refresh access token using body token or HttpOnly refresh cookie."""

    throttle_classes = [SafeScopedRateThrottle]
    throttle_scope = "auth_sustained"
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        refresh_cookie = getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token")
        payload = {"refresh": request.data.get("refresh") or request.COOKIES.get(refresh_cookie)}
        if not payload["refresh"]:
            return error_response(ErrorCode.UNAUTHORIZED, "Refresh token missing")

        serializer = self.get_serializer(data=payload)
        serializer.is_valid(raise_exception=True)
        validated = serializer.validated_data

        access = validated["access"]
        refresh = validated.get("refresh", payload["refresh"])
        data = {}
        if getattr(settings, "JWT_RETURN_TOKENS_IN_BODY", False):
            data.update({"access": access, "refresh": refresh})

        response = success_response(data, message="Token refreshed")
        _set_auth_cookies(response, access=access, refresh=refresh)
        return response


class LogoutAPIView(APIView):
    """Blacklist the refresh token (when present) and clear auth cookies."""

    permission_classes = [permissions.AllowAny]

    def post(self, request):
        refresh_cookie = getattr(settings, "JWT_AUTH_REFRESH_COOKIE", "refresh_token")
        raw_refresh = request.data.get("refresh") or request.COOKIES.get(refresh_cookie)
        if raw_refresh:
            try:
                RefreshToken(raw_refresh).blacklist()
            except TokenError:
                logger.info("Logout with an invalid or already revoked refresh token")

        response = success_response(None, message="Signed out", status=status.HTTP_200_OK)
        _clear_auth_cookies(response)
        log_api_call("auth.logout", response.status_code, user=request.user, request=request)
        return response


@method_decorator(ensure_csrf_cookie, name="dispatch")
class CSRFTokenAPIView(APIView):
    """Return a CSRF token and ensure CSRF cookie is set."""

    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return success_response({"csrfToken": csrf.get_token(request)})
