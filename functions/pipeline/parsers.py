"""
Response body parsers.

parse() turns raw upstream bytes into plain dicts/lists/strings that the
schema engine can validate, whatever the wire format.

XML documents are flattened the way OData feeds need it:

    <feed xmlns:d="..." xmlns:m="...">
      <entry><m:properties><d:DownloadCount>42</d:DownloadCount></m:properties></entry>
    </feed>

becomes

    {"feed": {"entry": {"properties": {"DownloadCount": "42"}}}}

Namespace prefixes are stripped, repeated siblings become lists, single
children stay scalars (schemas use Array(single=True) where a list is
expected), and leaves marked m:null="true" are dropped.
"""

import json
import logging
import xml.etree.ElementTree as ET
from enum import Enum
from typing import Any, Optional, Union

from shared.errors import ParseError

logger = logging.getLogger(__name__)

ODATA_NULL_ATTR = "{http://schemas.microsoft.com/ado/2007/08/dataservices/metadata}null"


class WireFormat(str, Enum):
    JSON = "json"
    XML = "xml"


def _decode(raw: Union[bytes, str]) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def _local_name(tag: str) -> str:
    """Strip '{namespace-uri}' or 'prefix:' from an element tag."""
    if tag.startswith("{"):
        tag = tag.split("}", 1)[1]
    return tag.split(":")[-1]


def _is_null(element: ET.Element) -> bool:
    return element.attrib.get(ODATA_NULL_ATTR, "").lower() == "true"


def _element_to_value(element: ET.Element) -> Any:
    children = list(element)
    if not children:
        return (element.text or "").strip()

    result: dict[str, Any] = {}
    for child in children:
        if _is_null(child):
            continue
        name = _local_name(child.tag)
        value = _element_to_value(child)
        if name in result:
            existing = result[name]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[name] = [existing, value]
        else:
            result[name] = value
    return result


def parse_json(raw: Union[bytes, str]) -> Any:
    text = _decode(raw)
    if not text.strip():
        raise ParseError(raw=raw, wire_format=WireFormat.JSON.value)
    try:
        return json.loads(text)
    except (ValueError, json.JSONDecodeError) as e:
        logger.debug(f"Unparseable JSON body: {e}")
        raise ParseError(raw=raw, wire_format=WireFormat.JSON.value) from e


def parse_xml(raw: Union[bytes, str]) -> dict:
    if not _decode(raw).strip():
        raise ParseError(raw=raw, wire_format=WireFormat.XML.value)
    try:
        # Bytes keep the encoding declared in the XML prolog authoritative
        root = ET.fromstring(raw)
    except ET.ParseError as e:
        logger.debug(f"Unparseable XML body: {e}")
        raise ParseError(raw=raw, wire_format=WireFormat.XML.value) from e
    return {_local_name(root.tag): _element_to_value(root)}


def parse(raw: Union[bytes, str], wire_format: WireFormat) -> Any:
    """
    Parse a response body.

    Args:
        raw: Response body
        wire_format: WireFormat.JSON or WireFormat.XML

    Returns:
        Parsed payload (dicts, lists, scalars)

    Raises:
        ParseError for empty or malformed bodies
    """
    if WireFormat(wire_format) is WireFormat.XML:
        return parse_xml(raw)
    return parse_json(raw)


def odata_to_object(entry: Any) -> Optional[dict]:
    """
    Flatten an OData Atom entry to its property bag.

    Returns None when the feed had no entry, so callers can treat it
    exactly like an empty JSON result list.
    """
    if isinstance(entry, list):
        entry = entry[0] if entry else None
    if not entry or not isinstance(entry, dict):
        return None
    properties = entry.get("properties") or {}
    return {_local_name(key): value for key, value in properties.items()}
