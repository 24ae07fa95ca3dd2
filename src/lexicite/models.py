# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Plain records for sources, chunks and monitor check logs.
Chunks are immutable: a source update deletes and recreates its chunk set.
"""
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Optional

CHECK_STATUSES = ("changes_detected", "unchanged", "error", "updated")

FRESHNESS_STATES = ("unchecked", "unchanged", "changes_detected", "updated", "error")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Source:
    name: str
    sector: str
    source_type: str = "legislation"
    id: str = field(default_factory=new_id)
    source_url: Optional[str] = None
    version: Optional[str] = None
    effective_date: Optional[str] = None
    content_hash: Optional[str] = None
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)
    metadata: dict = field(default_factory=dict)

    @property
    def freshness(self) -> str:
        return self.metadata.get("freshness", "unchecked")

    def to_dict(self) -> dict:
        d = asdict(self)
        d["freshness"] = self.freshness
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "Source":
        data = {k: v for k, v in data.items() if k != "freshness"}
        return cls(**data)


@dataclass(frozen=True)
class Chunk:
    """A passage of a source. ``source_id``/``id`` are empty until stored."""
    content: str
    index: int = 0
    section_title: Optional[str] = None
    section_number: Optional[str] = None
    page_number: Optional[int] = None
    metadata: dict = field(default_factory=dict, compare=False, hash=False)
    source_id: str = ""
    id: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Chunk":
        return cls(**data)


@dataclass(frozen=True)
class CheckLogEntry:
    source_name: str
    status: str
    details: str = ""
    checked_at: str = field(default_factory=_now)

    def __post_init__(self):
        if self.status not in CHECK_STATUSES:
            raise ValueError(f"Unknown check status: {self.status}")

    def to_dict(self) -> dict:
        return asdict(self)
