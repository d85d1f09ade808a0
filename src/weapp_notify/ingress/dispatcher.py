"""Typed routing of decoded notifications to registered handlers.

Dispatch is two passes over the same bytes: the generic ``CommonResult``
decode picks a route from ``MsgType``/``Event``, then the payload is decoded
again into the route's concrete record and handed to the registered handler.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel

from weapp_notify.errors import EncodeError, RegistryFrozenError, UnexpectedMessageType
from weapp_notify.ingress import codec
from weapp_notify.models import (
    AddExpressOrder,
    AddExpressOrderReply,
    AddNearbyPoiAudit,
    CancelExpressOrder,
    CancelExpressOrderReply,
    CardMessage,
    CheckBusiness,
    CheckBusinessReply,
    CommonResult,
    EventType,
    ExpressPathUpdate,
    GetQuota,
    GetQuotaReply,
    ImageMessage,
    MediaCheckAsync,
    MsgType,
    TextMessage,
    UserEnterTempsession,
)

logger = logging.getLogger(__name__)

Kind = tuple[MsgType, EventType | None]
Handler = Callable[[Any], Any]
F = TypeVar("F", bound=Handler)


@dataclass(frozen=True)
class Route:
    """How to decode one kind and whether its handler answers."""

    record: type[CommonResult]
    expects_reply: bool = False


ROUTES: dict[Kind, Route] = {
    (MsgType.TEXT, None): Route(TextMessage),
    (MsgType.IMAGE, None): Route(ImageMessage),
    (MsgType.CARD, None): Route(CardMessage),
    (MsgType.EVENT, EventType.USER_ENTER_TEMPSESSION): Route(UserEnterTempsession),
    (MsgType.EVENT, EventType.MEDIA_CHECK_ASYNC): Route(MediaCheckAsync),
    (MsgType.EVENT, EventType.EXPRESS_PATH_UPDATE): Route(ExpressPathUpdate),
    (MsgType.EVENT, EventType.ADD_NEARBY_POI_AUDIT): Route(AddNearbyPoiAudit),
    (MsgType.EVENT, EventType.GET_QUOTA): Route(GetQuota, expects_reply=True),
    (MsgType.EVENT, EventType.ADD_EXPRESS_ORDER): Route(AddExpressOrder, expects_reply=True),
    (MsgType.EVENT, EventType.CANCEL_EXPRESS_ORDER): Route(CancelExpressOrder, expects_reply=True),
    (MsgType.EVENT, EventType.CHECK_BUSINESS): Route(CheckBusiness, expects_reply=True),
}


def resolve_kind(envelope: CommonResult) -> Kind:
    """Map the discriminator fields to a catalog kind.

    Raises:
        UnexpectedMessageType: If ``MsgType`` or ``Event`` is not in the catalog.
    """
    try:
        msg_type = MsgType(envelope.msg_type)
    except ValueError:
        raise UnexpectedMessageType(f"unexpected message type '{envelope.msg_type}'") from None

    if msg_type is not MsgType.EVENT:
        return (msg_type, None)

    try:
        return (msg_type, EventType(envelope.event))
    except ValueError:
        raise UnexpectedMessageType(f"unexpected event type '{envelope.event}'") from None


class HandlerRegistry:
    """At most one callback per notification kind.

    Handlers are registered at setup time and the registry is frozen when a
    server starts using it. A kind with no handler is silently ignored.

    Every ``on_*`` method returns the callback, so they work as decorators::

        registry = HandlerRegistry()

        @registry.on_get_quota
        def quota(event: GetQuota) -> GetQuotaReply:
            return GetQuotaReply.for_request(event, quota=100)
    """

    def __init__(self) -> None:
        self._handlers: dict[Kind, Handler] = {}
        self._frozen = False

    def register(self, kind: Kind, handler: Handler | None) -> None:
        """Set or clear (``None``) the handler for ``kind``."""
        if self._frozen:
            raise RegistryFrozenError("Handlers cannot be registered after the server has started")
        if kind not in ROUTES:
            raise UnexpectedMessageType(f"unknown notification kind {kind!r}")
        if handler is None:
            self._handlers.pop(kind, None)
        else:
            self._handlers[kind] = handler

    def get(self, kind: Kind) -> Handler | None:
        return self._handlers.get(kind)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def _slot(self, kind: Kind, fn: F) -> F:
        self.register(kind, fn)
        return fn

    # --- Customer service messages ---

    def on_text_message(self, fn: Callable[[TextMessage], None]) -> Callable[[TextMessage], None]:
        return self._slot((MsgType.TEXT, None), fn)

    def on_image_message(self, fn: Callable[[ImageMessage], None]) -> Callable[[ImageMessage], None]:
        return self._slot((MsgType.IMAGE, None), fn)

    def on_card_message(self, fn: Callable[[CardMessage], None]) -> Callable[[CardMessage], None]:
        return self._slot((MsgType.CARD, None), fn)

    # --- Fire-and-forget events ---

    def on_user_enter_tempsession(
        self, fn: Callable[[UserEnterTempsession], None]
    ) -> Callable[[UserEnterTempsession], None]:
        return self._slot((MsgType.EVENT, EventType.USER_ENTER_TEMPSESSION), fn)

    def on_media_check_async(
        self, fn: Callable[[MediaCheckAsync], None]
    ) -> Callable[[MediaCheckAsync], None]:
        return self._slot((MsgType.EVENT, EventType.MEDIA_CHECK_ASYNC), fn)

    def on_express_path_update(
        self, fn: Callable[[ExpressPathUpdate], None]
    ) -> Callable[[ExpressPathUpdate], None]:
        return self._slot((MsgType.EVENT, EventType.EXPRESS_PATH_UPDATE), fn)

    def on_add_nearby_poi_audit(
        self, fn: Callable[[AddNearbyPoiAudit], None]
    ) -> Callable[[AddNearbyPoiAudit], None]:
        return self._slot((MsgType.EVENT, EventType.ADD_NEARBY_POI_AUDIT), fn)

    # --- Request/response events ---

    def on_get_quota(
        self, fn: Callable[[GetQuota], GetQuotaReply | None]
    ) -> Callable[[GetQuota], GetQuotaReply | None]:
        return self._slot((MsgType.EVENT, EventType.GET_QUOTA), fn)

    def on_add_express_order(
        self, fn: Callable[[AddExpressOrder], AddExpressOrderReply | None]
    ) -> Callable[[AddExpressOrder], AddExpressOrderReply | None]:
        return self._slot((MsgType.EVENT, EventType.ADD_EXPRESS_ORDER), fn)

    def on_cancel_express_order(
        self, fn: Callable[[CancelExpressOrder], CancelExpressOrderReply | None]
    ) -> Callable[[CancelExpressOrder], CancelExpressOrderReply | None]:
        return self._slot((MsgType.EVENT, EventType.CANCEL_EXPRESS_ORDER), fn)

    def on_check_business(
        self, fn: Callable[[CheckBusiness], CheckBusinessReply | None]
    ) -> Callable[[CheckBusiness], CheckBusinessReply | None]:
        return self._slot((MsgType.EVENT, EventType.CHECK_BUSINESS), fn)


@dataclass(frozen=True)
class DispatchResult:
    """Outcome of one dispatch; ``reply`` is set only for answered requests."""

    kind: Kind
    handled: bool
    reply: BaseModel | None = None


class EventDispatcher:
    """Decode a plaintext notification and invoke its handler."""

    def __init__(self, registry: HandlerRegistry) -> None:
        self._registry = registry

    def dispatch(self, raw: bytes, content_type: str) -> DispatchResult:
        """Route one notification.

        Raises:
            DecodeError: If either decode pass fails.
            UnexpectedMessageType: If the kind is not in the catalog.
            EncodeError: If a handler returns something that is not a record.
        """
        envelope = codec.decode(raw, content_type, CommonResult)
        kind = resolve_kind(envelope)
        route = ROUTES[kind]

        record = codec.decode(raw, content_type, route.record)

        handler = self._registry.get(kind)
        if handler is None:
            logger.info("No handler for %s, ignoring", _kind_label(kind))
            return DispatchResult(kind=kind, handled=False)

        logger.debug("Dispatching %s to %s", _kind_label(kind), getattr(handler, "__name__", handler))
        result = handler(record)

        if not route.expects_reply or result is None:
            return DispatchResult(kind=kind, handled=True)

        if not isinstance(result, BaseModel):
            raise EncodeError(
                f"Handler for {_kind_label(kind)} returned {type(result).__name__}, expected a record"
            )
        return DispatchResult(kind=kind, handled=True, reply=result)


def _kind_label(kind: Kind) -> str:
    msg_type, event = kind
    return f"{msg_type.value}/{event.value}" if event else msg_type.value
