"""Response rendering with JSON/XML content negotiation."""

import re
import xml.etree.ElementTree as ET
from typing import Any, List, Mapping, Optional, Tuple

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

JSON_MEDIA_TYPE = "application/json"
XML_MEDIA_TYPES = ("application/xml", "text/xml")
SUPPORTED_MEDIA_TYPES = (JSON_MEDIA_TYPE, *XML_MEDIA_TYPES)

# Characters XML 1.0 cannot carry, even escaped
_XML_ILLEGAL_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")
_XML_NAME = re.compile(r"[A-Za-z_][\w.-]*\Z")


def _parse_accept(accept: str) -> List[Tuple[float, int, str]]:
    """Split an Accept header into (-quality, position, media type) triples."""
    candidates = []
    for position, part in enumerate(accept.split(",")):
        media_type, *params = [piece.strip() for piece in part.split(";")]
        quality = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if media_type and quality > 0:
            candidates.append((-quality, position, media_type.lower()))
    return sorted(candidates)


def negotiate_media_type(accept: Optional[str]) -> str:
    """
    Pick the response media type for an Accept header.

    Falls back to JSON when nothing acceptable is listed, including
    wildcard-only headers.
    """
    if not accept:
        return JSON_MEDIA_TYPE
    for _, _, media_type in _parse_accept(accept):
        if media_type in SUPPORTED_MEDIA_TYPES:
            return media_type
    return JSON_MEDIA_TYPE


def _to_plain(content: Any) -> Any:
    if isinstance(content, BaseModel):
        return content.model_dump(by_alias=True)
    if isinstance(content, (list, tuple)):
        return [_to_plain(item) for item in content]
    return content


def xml_text(value: Any) -> str:
    """Text of a scalar with the characters XML cannot represent removed."""
    return _XML_ILLEGAL_CHARS.sub("", str(value))


def _child_element(key: str, value: Any, item_tag: str) -> ET.Element:
    # Keys that are not XML names (e.g. JSON pointers) go into an attribute
    if _XML_NAME.match(key):
        return _build_element(key, value, item_tag)
    element = _build_element("entry", value, item_tag)
    element.set("key", xml_text(key))
    return element


def _build_element(tag: str, value: Any, item_tag: str) -> ET.Element:
    element = ET.Element(tag)
    if isinstance(value, Mapping):
        for key, child in value.items():
            if child is not None:
                element.append(_child_element(str(key), child, item_tag))
    elif isinstance(value, list):
        for child in value:
            element.append(_build_element(item_tag, child, item_tag))
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    elif value is not None:
        element.text = xml_text(value)
    return element


def to_xml(content: Any, root: str, item_tag: str = "item") -> str:
    """Serialize models, lists and scalars to an XML document."""
    element = _build_element(root, _to_plain(content), item_tag)
    return ET.tostring(element, encoding="unicode", xml_declaration=True)


def render(
    request: Request,
    content: Any,
    *,
    status_code: int = 200,
    headers: Optional[Mapping[str, str]] = None,
    xml_root: str = "user",
    xml_item: str = "user",
) -> Response:
    """
    Render ``content`` in the representation the client asked for.

    Args:
        request: Incoming request (its Accept header drives the choice)
        content: Pydantic model, list of models, or scalar
        status_code: Response status
        headers: Extra response headers
        xml_root: Root element name for XML output
        xml_item: Element name for list items in XML output
    """
    media_type = negotiate_media_type(request.headers.get("accept"))
    if media_type in XML_MEDIA_TYPES:
        return Response(
            content=to_xml(content, xml_root, xml_item),
            status_code=status_code,
            headers=dict(headers or {}),
            media_type=media_type,
        )
    return JSONResponse(
        content=jsonable_encoder(content, by_alias=True),
        status_code=status_code,
        headers=dict(headers or {}),
    )


def render_error(
    request: Request,
    envelope: Mapping[str, Any],
    *,
    status_code: int,
    headers: Optional[Mapping[str, str]] = None,
) -> Response:
    """
    Render an ``{"error": {...}}`` envelope in the negotiated media type.

    XML error bodies use ``<error>`` as the root element.
    """
    media_type = negotiate_media_type(request.headers.get("accept"))
    return render(
        request,
        envelope if media_type == JSON_MEDIA_TYPE else envelope["error"],
        status_code=status_code,
        headers=headers,
        xml_root="error",
        xml_item="item",
    )
