"""Parse multipart/mixed manifest responses the way a client would."""

from __future__ import annotations

import email
from email.message import Message
from typing import Dict


def parse_multipart(content_type: str, body: bytes) -> Dict[str, Message]:
    """Return the parts of a multipart body keyed by their form name."""
    raw = b"Content-Type: " + content_type.encode("ascii") + b"\r\n\r\n" + body
    message = email.message_from_bytes(raw)
    assert message.is_multipart(), "response body is not multipart"
    parts: Dict[str, Message] = {}
    for part in message.get_payload():
        name = part.get_param("name", header="content-disposition")
        parts[str(name)] = part
    return parts


def part_text(part: Message) -> str:
    return part.get_payload(decode=True).decode("utf-8")
