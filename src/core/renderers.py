"""JSON renderer that guarantees the response envelope."""
from rest_framework.renderers import JSONRenderer

from core.envelope import success_payload


class EnvelopeJSONRenderer(JSONRenderer):
    """Wrap payloads that are not already enveloped.

    Views built on :mod:`core.envelope` return ``{"success": ..., ...}`` and
    pass through untouched; plain serializer output becomes ``data``.
    """

    def render(self, data, accepted_media_type=None, renderer_context=None):
        response = (renderer_context or {}).get("response")
        if response is not None and response.status_code == 204:
            return b""
        if not (isinstance(data, dict) and "success" in data):
            data = success_payload(data)
        return super().render(data, accepted_media_type, renderer_context)
