"""Pydantic V2 records for mini program push notifications.

Field aliases follow the platform's wire names, so the same model decodes
both the JSON and the XML form of a notification. Records are lax (XML only
carries strings) and keep unknown fields.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _as_list(value: Any) -> Any:
    """XML yields a single dict for a tag that appears once."""
    if value is None or value == "":
        return []
    if isinstance(value, dict):
        return [value]
    return value


# ============================================================
# Enums
# ============================================================


class MsgType(StrEnum):
    """Top-level message kinds."""

    TEXT = "text"
    IMAGE = "image"
    CARD = "miniprogrampage"
    EVENT = "event"


class EventType(StrEnum):
    """Event kinds carried under ``MsgType=event``."""

    GET_QUOTA = "get_quota"
    CHECK_BUSINESS = "check_biz"
    MEDIA_CHECK_ASYNC = "wxa_media_check"
    ADD_EXPRESS_ORDER = "add_waybill"
    EXPRESS_PATH_UPDATE = "add_express_path"
    CANCEL_EXPRESS_ORDER = "cancel_waybill"
    USER_ENTER_TEMPSESSION = "user_enter_tempsession"
    ADD_NEARBY_POI_AUDIT = "add_nearby_poi_audit_info"


class Record(BaseModel):
    """Base for every wire record."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


# ============================================================
# Envelopes
# ============================================================


class EncryptedEnvelope(Record):
    """Inbound body in encrypted mode."""

    encrypt: str = Field(alias="Encrypt")


class EncryptedReply(Record):
    """Outbound body in encrypted mode."""

    encrypt: str = Field(alias="Encrypt")
    msg_signature: str = Field(alias="MsgSignature")
    timestamp: str = Field(alias="TimeStamp")
    nonce: str = Field(alias="Nonce")


class CommonResult(Record):
    """Fields shared by every notification; enough to pick the concrete type."""

    to_user_name: str = Field(default="", alias="ToUserName")
    from_user_name: str = Field(default="", alias="FromUserName")
    create_time: int = Field(default=0, alias="CreateTime")
    msg_type: str = Field(default="", alias="MsgType")
    event: str = Field(default="", alias="Event")


# ============================================================
# Customer service messages
# ============================================================


class TextMessage(CommonResult):
    """Customer text message."""

    content: str = Field(default="", alias="Content")
    msg_id: int = Field(default=0, alias="MsgId")


class ImageMessage(CommonResult):
    """Customer image message."""

    pic_url: str = Field(default="", alias="PicUrl")
    media_id: str = Field(default="", alias="MediaId")
    msg_id: int = Field(default=0, alias="MsgId")


class CardMessage(CommonResult):
    """Mini program card shared into the conversation."""

    title: str = Field(default="", alias="Title")
    app_id: str = Field(default="", alias="AppId")
    page_path: str = Field(default="", alias="PagePath")
    thumb_url: str = Field(default="", alias="ThumbUrl")
    thumb_media_id: str = Field(default="", alias="ThumbMediaId")
    msg_id: int = Field(default=0, alias="MsgId")


# ============================================================
# Events
# ============================================================


class UserEnterTempsession(CommonResult):
    """User entered a customer service session."""

    session_from: str = Field(default="", alias="SessionFrom")


class MediaCheckAsync(CommonResult):
    """Result of an asynchronous image/audio content check."""

    is_risky: int = Field(default=0, alias="isrisky")
    extra_info_json: str = Field(default="", alias="extra_info_json")
    app_id: str = Field(default="", alias="appid")
    trace_id: str = Field(default="", alias="trace_id")
    status_code: int = Field(default=0, alias="status_code")


class AddNearbyPoiAudit(CommonResult):
    """Audit result for a nearby-POI submission."""

    audit_id: int = Field(default=0, alias="audit_id")
    status: int = Field(default=0, alias="status")
    reason: str = Field(default="", alias="reason")
    poi_id: int = Field(default=0, alias="poi_id")


# --- Logistics ---


class ExpressContact(Record):
    """Sender or receiver of a waybill."""

    name: str = Field(default="", alias="Name")
    tel: str = Field(default="", alias="Tel")
    mobile: str = Field(default="", alias="Mobile")
    company: str = Field(default="", alias="Company")
    post_code: str = Field(default="", alias="PostCode")
    country: str = Field(default="", alias="Country")
    province: str = Field(default="", alias="Province")
    city: str = Field(default="", alias="City")
    area: str = Field(default="", alias="Area")
    address: str = Field(default="", alias="Address")


class CargoDetail(Record):
    name: str = Field(default="", alias="Name")
    count: int = Field(default=0, alias="Count")


class ExpressCargo(Record):
    """Package description of a waybill."""

    weight: float = Field(default=0, alias="Weight")
    space_x: float = Field(default=0, alias="Space_X")
    space_y: float = Field(default=0, alias="Space_Y")
    space_z: float = Field(default=0, alias="Space_Z")
    count: int = Field(default=0, alias="Count")
    detail_list: Annotated[list[CargoDetail], BeforeValidator(_as_list)] = Field(
        default_factory=list, alias="DetailList"
    )


class ExpressInsure(Record):
    use_insured: int = Field(default=0, alias="UseInsured")
    insured_value: int = Field(default=0, alias="InsuredValue")


class ExpressService(Record):
    service_type: int = Field(default=0, alias="ServiceType")
    service_name: str = Field(default="", alias="ServiceName")


class AddExpressOrder(CommonResult):
    """Request to create a waybill with a logistics provider."""

    token: str = Field(default="", alias="Token")
    order_id: str = Field(default="", alias="OrderID")
    biz_id: str = Field(default="", alias="BizID")
    biz_pwd: str = Field(default="", alias="BizPwd")
    shop_app_id: str = Field(default="", alias="ShopAppID")
    waybill_id: str = Field(default="", alias="WayBillID")
    remark: str = Field(default="", alias="Remark")
    sender: ExpressContact | None = Field(default=None, alias="Sender")
    receiver: ExpressContact | None = Field(default=None, alias="Receiver")
    cargo: ExpressCargo | None = Field(default=None, alias="Cargo")
    insured: ExpressInsure | None = Field(default=None, alias="Insured")
    service: ExpressService | None = Field(default=None, alias="Service")


class CancelExpressOrder(CommonResult):
    """Request to cancel a previously created waybill."""

    order_id: str = Field(default="", alias="OrderID")
    biz_id: str = Field(default="", alias="BizID")
    biz_pwd: str = Field(default="", alias="BizPwd")
    shop_app_id: str = Field(default="", alias="ShopAppID")
    waybill_id: str = Field(default="", alias="WayBillID")


class CheckBusiness(CommonResult):
    """Request to verify a merchant account with the logistics provider."""

    biz_id: str = Field(default="", alias="BizID")
    biz_pwd: str = Field(default="", alias="BizPwd")


class GetQuota(CommonResult):
    """Balance query for a merchant account."""

    biz_id: str = Field(default="", alias="BizID")
    biz_pwd: str = Field(default="", alias="BizPwd")


class ExpressPathAction(Record):
    action_time: int = Field(default=0, alias="ActionTime")
    action_type: int = Field(default=0, alias="ActionType")
    action_msg: str = Field(default="", alias="ActionMsg")


class ExpressPathUpdate(CommonResult):
    """Waybill tracking update."""

    delivery_id: str = Field(default="", alias="DeliveryID")
    waybill_id: str = Field(default="", alias="WayBillId")
    version: int = Field(default=0, alias="Version")
    count: int = Field(default=0, alias="Count")
    actions: Annotated[list[ExpressPathAction], BeforeValidator(_as_list)] = Field(
        default_factory=list, alias="Actions"
    )


# ============================================================
# Replies (request/response events)
# ============================================================


class ReplyBase(Record):
    """Common shape of a reply to a request/response event.

    ``to_user_name`` and ``from_user_name`` are swapped relative to the
    request; use ``for_request`` to fill them in.
    """

    to_user_name: str = Field(default="", alias="ToUserName")
    from_user_name: str = Field(default="", alias="FromUserName")
    create_time: int = Field(default=0, alias="CreateTime")
    msg_type: str = Field(default=MsgType.EVENT.value, alias="MsgType")
    event: str = Field(default="", alias="Event")
    result_code: int = Field(default=0, alias="ResultCode")
    result_msg: str = Field(default="", alias="ResultMsg")

    @classmethod
    def for_request(cls, request: CommonResult, **fields: Any) -> ReplyBase:
        """Build a reply addressed back to the sender of ``request``."""
        return cls(
            to_user_name=request.from_user_name,
            from_user_name=request.to_user_name,
            create_time=request.create_time,
            event=request.event,
            **fields,
        )


class AddExpressOrderReply(ReplyBase):
    token: str = Field(default="", alias="Token")
    order_id: str = Field(default="", alias="OrderID")
    biz_id: str = Field(default="", alias="BizID")
    waybill_id: str = Field(default="", alias="WayBillID")
    waybill_data: str = Field(default="", alias="WaybillData")


class CancelExpressOrderReply(ReplyBase):
    pass


class CheckBusinessReply(ReplyBase):
    pass


class GetQuotaReply(ReplyBase):
    quota: float = Field(default=0, alias="Quota")
