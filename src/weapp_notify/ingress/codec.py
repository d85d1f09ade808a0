"""JSON/XML codec for notification bodies.

The scheme is picked from the request's Content-Type and the reply is always
encoded with the same scheme the request was decoded with.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from enum import StrEnum
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from weapp_notify.errors import DecodeError, EncodeError, UnsupportedContentType

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

XML_ROOT = "xml"


class ContentType(StrEnum):
    """Content types the platform pushes."""

    JSON = "application/json"
    XML = "application/xml"


def resolve_content_type(header: str | None) -> str:
    """Map a Content-Type header to a supported scheme.

    Anything that is not JSON or XML is returned unchanged and rejected later
    by ``decode``/``encode``.
    """
    header = header or ""
    if ContentType.JSON in header:
        return ContentType.JSON
    if ContentType.XML in header:
        return ContentType.XML
    return header


# ================================================================
# XML <-> dict
# ================================================================


def _element_to_value(element: ET.Element) -> Any:
    children = list(element)
    if not children:
        return element.text or ""

    result: dict[str, Any] = {}
    for child in children:
        value = _element_to_value(child)
        if value == "":
            continue
        if child.tag in result:
            existing = result[child.tag]
            if not isinstance(existing, list):
                result[child.tag] = [existing]
            result[child.tag].append(value)
        else:
            result[child.tag] = value
    return result


def _append_value(parent: ET.Element, tag: str, value: Any) -> None:
    if isinstance(value, list):
        for item in value:
            _append_value(parent, tag, item)
        return

    child = ET.SubElement(parent, tag)
    if isinstance(value, dict):
        for key, item in value.items():
            _append_value(child, key, item)
    elif isinstance(value, bool):
        child.text = "1" if value else "0"
    else:
        child.text = str(value)


def xml_to_dict(raw: bytes) -> dict[str, Any]:
    """Parse an ``<xml>`` document into a dict, dropping the root tag.

    Documents carrying a DTD are refused; platform payloads never declare one.
    """
    if b"<!DOCTYPE" in raw.upper():
        raise DecodeError("XML payloads with a DOCTYPE are not accepted", code="XML_DTD_FORBIDDEN")
    root = ET.fromstring(raw)
    value = _element_to_value(root)
    return value if isinstance(value, dict) else {}


def dict_to_xml(data: dict[str, Any]) -> bytes:
    """Serialize a dict as an ``<xml>`` document."""
    root = ET.Element(XML_ROOT)
    for key, value in data.items():
        _append_value(root, key, value)
    return ET.tostring(root, encoding="utf-8", xml_declaration=False)


# ================================================================
# Records
# ================================================================


def decode(raw: bytes, content_type: str, model: type[ModelT]) -> ModelT:
    """Decode ``raw`` into ``model`` using the given scheme.

    Raises:
        UnsupportedContentType: If the scheme is neither JSON nor XML.
        DecodeError: If the payload is malformed or does not fit the model.
    """
    try:
        if content_type == ContentType.JSON:
            return model.model_validate_json(raw)
        if content_type == ContentType.XML:
            return model.model_validate(xml_to_dict(raw))
    except ValidationError as e:
        logger.error("Failed to decode %s as %s: %s", content_type, model.__name__, e)
        raise DecodeError(f"Invalid {model.__name__} payload: {e}") from e
    except ET.ParseError as e:
        logger.error("Malformed XML payload: %s", e)
        raise DecodeError(f"Malformed XML payload: {e}") from e

    raise UnsupportedContentType(f"invalid content type: {content_type!r}")


def encode(record: BaseModel, content_type: str) -> bytes:
    """Encode ``record`` with its wire field names.

    Raises:
        UnsupportedContentType: If the scheme is neither JSON nor XML.
        EncodeError: If the record cannot be serialized.
    """
    if content_type not in (ContentType.JSON, ContentType.XML):
        raise UnsupportedContentType(f"invalid content type: {content_type!r}")

    try:
        if content_type == ContentType.JSON:
            return record.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
        return dict_to_xml(record.model_dump(mode="json", by_alias=True, exclude_none=True))
    except (ValueError, TypeError) as e:
        raise EncodeError(f"Cannot encode {type(record).__name__}: {e}") from e
