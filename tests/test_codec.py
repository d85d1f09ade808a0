"""Tests for JSON/XML content negotiation and record (de)serialization."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET

import pytest

from tests.conftest import make_notification, to_json
from weapp_notify.errors import DecodeError, UnsupportedContentType
from weapp_notify.ingress import codec
from weapp_notify.ingress.codec import ContentType
from weapp_notify.models import (
    AddExpressOrder,
    CommonResult,
    EncryptedReply,
    ExpressPathUpdate,
    GetQuotaReply,
    TextMessage,
)

TEXT_XML = b"""<xml>
  <ToUserName><![CDATA[gh_0123456789ab]]></ToUserName>
  <FromUserName><![CDATA[oUser_openid_0001]]></FromUserName>
  <CreateTime>1707561564</CreateTime>
  <MsgType><![CDATA[text]]></MsgType>
  <Content><![CDATA[ hello <world> ]]></Content>
  <MsgId>1234567890123456</MsgId>
</xml>"""


class TestResolveContentType:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("application/json", ContentType.JSON),
            ("application/json; charset=utf-8", ContentType.JSON),
            ("application/xml", ContentType.XML),
            ("application/xml;charset=UTF-8", ContentType.XML),
            ("text/plain", "text/plain"),
            (None, ""),
        ],
    )
    def test_substring_match(self, header: str | None, expected: str) -> None:
        assert codec.resolve_content_type(header) == expected


class TestDecode:
    def test_json_text_message(self) -> None:
        raw = to_json(make_notification("text", Content="hi", MsgId=42))
        msg = codec.decode(raw, ContentType.JSON, TextMessage)
        assert msg.content == "hi"
        assert msg.msg_id == 42
        assert msg.from_user_name == "oUser_openid_0001"

    def test_xml_text_message(self) -> None:
        msg = codec.decode(TEXT_XML, ContentType.XML, TextMessage)
        assert msg.content == " hello <world> "
        assert msg.create_time == 1707561564
        assert msg.msg_id == 1234567890123456

    def test_generic_and_concrete_decode_same_bytes(self) -> None:
        common = codec.decode(TEXT_XML, ContentType.XML, CommonResult)
        concrete = codec.decode(TEXT_XML, ContentType.XML, TextMessage)
        assert common.msg_type == concrete.msg_type == "text"

    def test_xml_nested_and_single_item_lists(self) -> None:
        raw = b"""<xml>
            <MsgType>event</MsgType><Event>add_express_path</Event>
            <DeliveryID>SF</DeliveryID><WayBillId>SF123</WayBillId><Version>3</Version><Count>1</Count>
            <Actions><ActionTime>1533052800</ActionTime><ActionType>100001</ActionType><ActionMsg>picked up</ActionMsg></Actions>
        </xml>"""
        update = codec.decode(raw, ContentType.XML, ExpressPathUpdate)
        assert update.version == 3
        assert len(update.actions) == 1
        assert update.actions[0].action_type == 100001

    def test_xml_repeated_tags_become_list(self) -> None:
        raw = b"""<xml>
            <MsgType>event</MsgType><Event>add_waybill</Event><OrderID>o1</OrderID>
            <Sender><Name>Alice</Name><Mobile>13800000000</Mobile></Sender>
            <Cargo><Weight>1.5</Weight>
              <DetailList><Name>book</Name><Count>2</Count></DetailList>
              <DetailList><Name>pen</Name><Count>5</Count></DetailList>
            </Cargo>
        </xml>"""
        order = codec.decode(raw, ContentType.XML, AddExpressOrder)
        assert order.sender is not None and order.sender.name == "Alice"
        assert order.cargo is not None
        assert order.cargo.weight == 1.5
        assert [d.name for d in order.cargo.detail_list] == ["book", "pen"]

    def test_malformed_json(self) -> None:
        with pytest.raises(DecodeError):
            codec.decode(b"not valid json {{{", ContentType.JSON, CommonResult)

    def test_malformed_xml(self) -> None:
        with pytest.raises(DecodeError):
            codec.decode(b"<xml><MsgType>text</xml>", ContentType.XML, CommonResult)

    def test_xml_with_doctype_rejected(self) -> None:
        """Entity declarations never reach the parser."""
        raw = b'<!DOCTYPE x [<!ENTITY a "text">]><xml><MsgType>&a;</MsgType></xml>'
        with pytest.raises(DecodeError) as exc:
            codec.decode(raw, ContentType.XML, CommonResult)
        assert exc.value.code == "XML_DTD_FORBIDDEN"

    def test_schema_mismatch(self) -> None:
        with pytest.raises(DecodeError):
            codec.decode(b'{"CreateTime": "yesterday"}', ContentType.JSON, CommonResult)

    def test_unsupported_content_type(self) -> None:
        with pytest.raises(UnsupportedContentType):
            codec.decode(b"{}", "text/plain", CommonResult)


class TestEncode:
    def test_json_uses_wire_names(self) -> None:
        reply = EncryptedReply(encrypt="abc", msg_signature="sig", timestamp="1", nonce="n")
        data = json.loads(codec.encode(reply, ContentType.JSON))
        assert data == {"Encrypt": "abc", "MsgSignature": "sig", "TimeStamp": "1", "Nonce": "n"}

    def test_xml_root_and_fields(self) -> None:
        reply = GetQuotaReply(event="get_quota", result_code=0, result_msg="ok", quota=99.5)
        root = ET.fromstring(codec.encode(reply, ContentType.XML))
        assert root.tag == "xml"
        assert root.findtext("MsgType") == "event"
        assert root.findtext("Quota") == "99.5"
        assert root.findtext("ResultMsg") == "ok"

    def test_xml_encode_then_decode(self) -> None:
        reply = GetQuotaReply(to_user_name="a", from_user_name="b", event="get_quota", quota=10)
        decoded = codec.decode(codec.encode(reply, ContentType.XML), ContentType.XML, GetQuotaReply)
        assert decoded.quota == 10
        assert decoded.to_user_name == "a"

    def test_unsupported_content_type(self) -> None:
        with pytest.raises(UnsupportedContentType):
            codec.encode(GetQuotaReply(), "text/html")
