"""Scrub credentials and secrets out of agent-written free text."""

from __future__ import annotations

import re
from typing import NamedTuple

REDACTED = "[REDACTED]"

KEY_PATTERNS = [
    re.compile(r"moltbook_[a-zA-Z0-9_\-]+"),
    re.compile(r"casino_[a-zA-Z0-9_\-]+"),
    re.compile(r"claim_[a-zA-Z0-9_\-]+"),
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
    re.compile(r"-----BEGIN[\s\S]+?PRIVATE KEY-----[\s\S]+?-----END[\s\S]+?PRIVATE KEY-----"),
    # 12-24 lower-case words in a row look like a wallet seed phrase
    re.compile(r"\b(?:[a-z]+\s+){11,23}[a-z]+\b", re.IGNORECASE),
]

URL_SECRET = re.compile(r"([?&](?:token|auth|key|signature)=)[^&\s]+", re.IGNORECASE)


class Redaction(NamedTuple):
    text: str
    redacted: bool


def redact(text: str) -> Redaction:
    out = text
    for pattern in KEY_PATTERNS:
        out = pattern.sub(REDACTED, out)
    out = URL_SECRET.sub(r"\1" + REDACTED, out)
    return Redaction(out, out != text)


def redact_optional(text: str | None) -> str | None:
    return redact(text).text if text else text
