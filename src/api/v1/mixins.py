"""Shared view behaviour for API v1."""
from core.envelope import log_api_call


class ApiCallLogMixin:
    """Log every handled request as ``<resource>.<action>`` with its status."""

    log_resource = None

    def get_log_action(self, request) -> str:
        resource = self.log_resource or getattr(self, "basename", None) or self.__class__.__name__.lower()
        action = getattr(self, "action", None) or request.method.lower()
        return f"{resource}.{action}"

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        lookup = getattr(self, "lookup_url_kwarg", None) or getattr(self, "lookup_field", "pk")
        log_api_call(
            self.get_log_action(request),
            response.status_code,
            resource_id=self.kwargs.get(lookup),
            user=getattr(request, "user", None),
            request=request,
        )
        return response
