"""JWT authentication for the Vmax Sales API."""
import logging

from django.conf import settings
from rest_framework import exceptions
from rest_framework.authentication import CSRFCheck
from rest_framework.request import Request
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError

logger = logging.getLogger("vmax")


def access_cookie_name() -> str:
    return getattr(settings, "JWT_AUTH_COOKIE", "access_token")


class CookieJWTAuthentication(JWTAuthentication):
    """Accept the access token from the ``Authorization`` header or a cookie.

    A bad header token is a 401. A stale cookie token authenticates nobody,
    so the refresh endpoint stays reachable. Cookie-authenticated requests
    must pass the CSRF check.
    """

    def enforce_csrf(self, request: Request) -> None:
        check = CSRFCheck(lambda req: None)
        check.process_request(request)
        reason = check.process_view(request, None, (), {})
        if reason:
            raise exceptions.PermissionDenied(f"CSRF Failed: {reason}")

    def header_token(self, request: Request):
        header = self.get_header(request)
        if header is None:
            return None
        return self.get_raw_token(header)

    def authenticate(self, request: Request):
        raw_token = self.header_token(request)
        if raw_token is not None:
            validated_token = self.get_validated_token(raw_token)
            return self.get_user(validated_token), validated_token

        raw_cookie = request.COOKIES.get(access_cookie_name())
        if not raw_cookie:
            return None
        try:
            validated_token = self.get_validated_token(raw_cookie)
        except (InvalidToken, TokenError):
            logger.debug("Ignoring stale access cookie")
            return None

        self.enforce_csrf(request)
        return self.get_user(validated_token), validated_token
