from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

RecordId = str  # "<txid>i<n>"
Cursor = Optional[int]  # index sequence number; None = newest / exhausted


class Media(Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"
    PDF = "pdf"
    IFRAME = "iframe"
    UNKNOWN = "unknown"

    @classmethod
    def from_content_type(cls, content_type: Optional[str]) -> "Media":
        if not content_type:
            return cls.UNKNOWN
        ct = content_type.split(";", 1)[0].strip().lower()
        if ct in ("text/plain", "application/json"):
            return cls.TEXT
        if ct in ("text/html", "image/svg+xml"):
            return cls.IFRAME
        if ct == "application/pdf":
            return cls.PDF
        major = ct.split("/", 1)[0]
        if major == "image":
            return cls.IMAGE
        if major == "audio":
            return cls.AUDIO
        if major == "video":
            return cls.VIDEO
        return cls.UNKNOWN


@dataclass(frozen=True)
class Record:
    media: Media
    body: Optional[bytes] = None  # raw inscription content


@dataclass(frozen=True)
class RecordEntry:
    timestamp: int  # epoch seconds of the inscribing block


@dataclass
class Page:
    ids: List[RecordId] = field(default_factory=list)  # newest first
    older_cursor: Cursor = None
    newer_cursor: Cursor = None
