"""Mini program message push gateway.

``NotifyServer`` answers the platform's GET verification handshake and POST
notification deliveries. It authenticates and decrypts each delivery, hands
it to the registered handler and, for request/response events, encrypts and
returns the handler's reply in the platform's envelope.

``create_app`` mounts a server on a Starlette application; ``run_server_sync``
serves it with uvicorn.
"""

from __future__ import annotations

import importlib
import logging
import time
from collections.abc import Mapping

from starlette.applications import Starlette
from starlette.requests import ClientDisconnect, Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from weapp_notify.config import WeappConfig, load_config
from weapp_notify.errors import InvalidMethod, InvalidSignature, NotifyError, TransportError
from weapp_notify.ingress import codec
from weapp_notify.ingress.cipher import MessageCipher
from weapp_notify.ingress.dispatcher import EventDispatcher, HandlerRegistry
from weapp_notify.ingress.signature import validate_signature
from weapp_notify.models import EncryptedEnvelope
from weapp_notify.observability import MetricsCollector, metrics as default_metrics
from weapp_notify.security import sanitize_dict

logger = logging.getLogger(__name__)

ENCRYPT_TYPE_AES = "aes"
# ``serve`` itself rejects everything but GET and POST.
ROUTED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH"]


def is_encrypted(query: Mapping[str, str]) -> bool:
    """True when the delivery uses safe (AES) mode."""
    return query.get("encrypt_type", "") == ENCRYPT_TYPE_AES


class NotifyServer:
    """Handshake and delivery handling for one mini program.

    Args:
        config: Gateway configuration (AppID, token, AES key, ...).
        registry: Handlers to dispatch to. It is frozen here; register
            everything before constructing the server.
        metrics: Collector for counters; defaults to the module singleton.
    """

    def __init__(
        self,
        config: WeappConfig,
        registry: HandlerRegistry | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.config = config
        self.registry = registry or HandlerRegistry()
        self.registry.freeze()
        self.metrics = metrics or default_metrics

        self._cipher = MessageCipher(config.aes_key, config.app_id, config.token)
        self._dispatcher = EventDispatcher(self.registry)

    # ================================================================
    # GET: endpoint verification
    # ================================================================

    def handshake(self, query: Mapping[str, str]) -> str:
        """Return the ``echostr`` to prove ownership of the endpoint.

        Raises:
            InvalidSignature: If verification is enabled and the signature
                does not match.
        """
        echostr = query.get("echostr", "")

        if self.config.verify_handshake:
            ok = validate_signature(
                query.get("signature", ""),
                self.config.token,
                query.get("timestamp", ""),
                query.get("nonce", ""),
            )
            self.metrics.record_handshake(ok)
            if not ok:
                raise InvalidSignature("request server is invalid", code="INVALID_SOURCE")
        else:
            self.metrics.record_handshake(True)

        logger.info("Handshake accepted")
        return echostr

    # ================================================================
    # POST: notification delivery
    # ================================================================

    def handle_message(
        self,
        raw: bytes,
        content_type: str,
        query: Mapping[str, str],
    ) -> bytes | None:
        """Run one delivery through the pipeline.

        Args:
            raw: Request body.
            content_type: Resolved scheme (see ``codec.resolve_content_type``).
            query: Request query parameters.

        Returns:
            Encoded reply, or None when nothing should be written.
        """
        encrypted = is_encrypted(query)

        if encrypted:
            envelope = codec.decode(raw, content_type, EncryptedEnvelope)
            if not validate_signature(
                query.get("msg_signature", ""),
                self.config.token,
                query.get("timestamp", ""),
                query.get("nonce", ""),
                envelope.encrypt,
            ):
                raise InvalidSignature("invalid signature")
            raw = self._cipher.decrypt_message(envelope.encrypt)

        result = self._dispatcher.dispatch(raw, content_type)
        kind_label = "/".join(part.value for part in result.kind if part is not None)
        self.metrics.record_notification(kind_label, result.handled)

        if result.reply is None:
            return None

        body = codec.encode(result.reply, content_type)
        if encrypted:
            wrapper = self._cipher.encrypt_message(body, int(time.time()))
            body = codec.encode(wrapper, content_type)

        self.metrics.record_reply(kind_label)
        logger.info("Replying to %s (%d bytes, encrypted=%s)", kind_label, len(body), encrypted)
        return body

    async def serve(self, request: Request) -> Response:
        """Handle one HTTP request from the platform.

        Raises:
            NotifyError: Any failure; nothing has been written to the client.
        """
        try:
            return await self._serve(request)
        except NotifyError as e:
            self.metrics.record_error(e.code)
            logger.warning("Request rejected: %s (%s)", e, e.code)
            raise

    async def _serve(self, request: Request) -> Response:
        if request.method == "GET":
            return PlainTextResponse(self.handshake(request.query_params))

        if request.method == "POST":
            content_type = codec.resolve_content_type(request.headers.get("content-type"))
            try:
                raw = await request.body()
            except ClientDisconnect as e:
                raise TransportError(f"Failed to read request body: {e}") from e

            body = self.handle_message(raw, content_type, request.query_params)
            if body is None:
                return Response(status_code=200)
            return Response(content=body, status_code=200, media_type=content_type)

        raise InvalidMethod(f"invalid request method: {request.method}")


# ================================================================
# Starlette application
# ================================================================


async def _notify_error_handler(request: Request, exc: NotifyError) -> JSONResponse:
    return JSONResponse(
        {"error": exc.code, "detail": str(exc)},
        status_code=exc.http_status,
    )


def create_app(server: NotifyServer) -> Starlette:
    """Build a Starlette app serving ``server`` at ``config.path``."""

    async def notify_endpoint(request: Request) -> Response:
        return await server.serve(request)

    async def health_endpoint(request: Request) -> JSONResponse:
        """HTTP Health Check for load balancers."""
        return JSONResponse({"status": "ok", "service": "weapp-notify"})

    async def metrics_endpoint(request: Request) -> PlainTextResponse:
        return PlainTextResponse(
            server.metrics.render(),
            media_type="text/plain; version=0.0.4",
        )

    return Starlette(
        routes=[
            Route(
                server.config.path,
                endpoint=notify_endpoint,
                methods=ROUTED_METHODS,
            ),
            Route("/health", endpoint=health_endpoint, methods=["GET"]),
            Route("/metrics", endpoint=metrics_endpoint, methods=["GET"]),
        ],
        exception_handlers={NotifyError: _notify_error_handler},
    )


def load_registry(dotted_path: str) -> HandlerRegistry:
    """Import ``module`` or ``module:attr`` and return its ``HandlerRegistry``."""
    module_name, _, attr = dotted_path.partition(":")
    module = importlib.import_module(module_name)
    registry = getattr(module, attr or "registry")
    if not isinstance(registry, HandlerRegistry):
        raise TypeError(f"{dotted_path} is not a HandlerRegistry")
    return registry


def run_server_sync(
    config: WeappConfig | None = None,
    registry: HandlerRegistry | None = None,
) -> None:
    """Synchronous entrypoint: serve the gateway with uvicorn."""
    import uvicorn

    from weapp_notify.logging_config import configure_logging

    config = config or load_config()
    configure_logging(level=config.log_level)

    if registry is None and config.handlers:
        registry = load_registry(config.handlers)

    logger.info("Starting weapp-notify with %s", sanitize_dict(config.model_dump()))
    server = NotifyServer(config, registry)
    uvicorn.run(create_app(server), host=config.host, port=config.port)


# Allow direct execution
if __name__ == "__main__":
    run_server_sync()
