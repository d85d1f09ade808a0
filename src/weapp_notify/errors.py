"""Error types raised by the notification pipeline.

Every failure in a request surfaces to the caller of ``NotifyServer.serve``
as one of these exceptions. Nothing is retried internally.
"""

from __future__ import annotations


class NotifyError(Exception):
    """Base class for notification pipeline failures."""

    code = "NOTIFY_ERROR"
    http_status = 500

    def __init__(self, message: str, code: str | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message)


class TransportError(NotifyError):
    """Raised when the request body cannot be read."""

    code = "TRANSPORT_ERROR"
    http_status = 400


class InvalidSignature(NotifyError):
    """Raised when a handshake or encrypted envelope fails authentication."""

    code = "INVALID_SIGNATURE"
    http_status = 401


class DecodeError(NotifyError):
    """Raised when a payload cannot be decoded into the expected record."""

    code = "DECODE_ERROR"
    http_status = 400


class UnsupportedContentType(DecodeError):
    """Raised for a content type that is neither JSON nor XML."""

    code = "UNSUPPORTED_CONTENT_TYPE"
    http_status = 415


class DecryptError(NotifyError):
    """Raised for bad base64, misaligned ciphertext, bad padding or framing."""

    code = "DECRYPT_ERROR"
    http_status = 400


class UnexpectedMessageType(NotifyError):
    """Raised when MsgType/Event is outside the platform catalog."""

    code = "UNEXPECTED_MESSAGE_TYPE"
    http_status = 400


class EncodeError(NotifyError):
    """Raised when a handler reply cannot be encoded."""

    code = "ENCODE_ERROR"
    http_status = 500


class InvalidMethod(NotifyError):
    """Raised for HTTP methods other than GET and POST."""

    code = "INVALID_METHOD"
    http_status = 405


class RegistryFrozenError(NotifyError):
    """Raised when registering a handler after the server has started."""

    code = "REGISTRY_FROZEN"
