# lostfound/schemas.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

PHOTO_LIMIT = 3
SECRET_LIMIT = 3


class Flow(str, Enum):
    LOST = "lost"
    FOUND = "found"

    @property
    def listing_type(self) -> str:
        return self.name

    @property
    def opposite_type(self) -> str:
        return "FOUND" if self is Flow.LOST else "LOST"

    @classmethod
    def from_listing_type(cls, value: str) -> "Flow":
        return cls.LOST if value == "LOST" else cls.FOUND


class Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------- geo

class Coordinate(Frozen):
    lat: float
    lng: float


class PublicLocation(Frozen):
    lat: float
    lng: float
    precision: Literal["point", "area"]


# ---------------------------------------------------------------- draft

class PhotoAttachment(Frozen):
    id: str
    url: Optional[str] = None
    token: Optional[str] = None


class PendingSecret(Frozen):
    key: str
    value: str


class ListingDraft(Frozen):
    """In-progress report. Every builder returns a new draft."""

    type: Literal["LOST", "FOUND"]
    category: Optional[str] = None
    # absent key: not asked yet; None: asked and skipped
    attributes: dict[str, Optional[str]] = Field(default_factory=dict)
    photos: tuple[PhotoAttachment, ...] = ()
    location: Optional[PublicLocation] = None
    location_original: Optional[Coordinate] = None
    location_note: str = ""
    occurred_at: Optional[datetime] = None
    secrets: tuple[str, ...] = ()
    encrypted_secrets: tuple[dict, ...] = ()
    pending_secrets: tuple[PendingSecret, ...] = ()

    @classmethod
    def empty(cls, flow: Flow) -> "ListingDraft":
        return cls(type=flow.listing_type)

    def with_category(self, category: str) -> "ListingDraft":
        return self.model_copy(update={"category": category, "attributes": {}, "pending_secrets": ()})

    def with_answer(self, key: str, value: Optional[str], secret_hint: bool = False) -> "ListingDraft":
        update: dict = {"attributes": {**self.attributes, key: value}}
        if secret_hint:
            pending = [item for item in self.pending_secrets if item.key != key]
            if value and len(pending) < SECRET_LIMIT:
                pending.append(PendingSecret(key=key, value=value))
            update["pending_secrets"] = tuple(pending)
        return self.model_copy(update=update)

    def with_photos(self, attachments, limit: int = PHOTO_LIMIT) -> tuple["ListingDraft", int, int]:
        """Append attachments up to `limit`, ignoring known ids. Returns (draft, added, skipped)."""
        photos = list(self.photos)
        seen = {p.id for p in photos}
        added = skipped = 0
        for att in attachments:
            if len(photos) >= limit or att.id in seen:
                skipped += 1
                continue
            photos.append(att)
            seen.add(att.id)
            added += 1
        return self.model_copy(update={"photos": tuple(photos)}), added, skipped

    def with_location(self, note: str = "", public: Optional[PublicLocation] = None,
                      original: Optional[Coordinate] = None) -> "ListingDraft":
        update: dict = {}
        if note:
            update["location_note"] = note
        if public is not None:
            update["location"] = public
        if original is not None:
            update["location_original"] = original
        return self.model_copy(update=update)

    def with_secrets(self, secrets: list[str], encrypted: list[dict]) -> "ListingDraft":
        return self.model_copy(update={
            "secrets": tuple(secrets[:SECRET_LIMIT]),
            "encrypted_secrets": tuple(encrypted[:SECRET_LIMIT]),
            "pending_secrets": (),
        })


class SessionPayload(Frozen):
    flow: Flow
    listing: ListingDraft
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def start(cls, flow: Flow) -> "SessionPayload":
        return cls(flow=flow, listing=ListingDraft.empty(flow))

    def with_listing(self, listing: ListingDraft) -> "SessionPayload":
        return self.model_copy(update={"listing": listing})


# ---------------------------------------------------------------- events / replies

class InboundEvent(Frozen):
    kind: Literal["text", "callback", "cancel"]
    user_id: int
    username: Optional[str] = None
    text: str = ""
    coordinate: Optional[Coordinate] = None
    photos: tuple[PhotoAttachment, ...] = ()
    callback_payload: Optional[str] = None

    @property
    def lower_text(self) -> str:
        return self.text.strip().lower()


class Button(Frozen):
    label: str
    callback: Optional[str] = None
    url: Optional[str] = None


class Reply(Frozen):
    text: str
    keyboard: Optional[tuple[tuple[Button, ...], ...]] = None


class Outcome(BaseModel):
    replies: list[Reply] = Field(default_factory=list)
    notification: Optional[str] = None

    def say(self, text: str, keyboard=None) -> None:
        self.replies.append(Reply(text=text, keyboard=keyboard))


class CallbackData(Frozen):
    flow: Optional[Flow]
    action: str
    value: str = ""

    def encode(self) -> str:
        parts = ["flow", self.flow.value if self.flow else "-", self.action]
        if self.value:
            parts.append(self.value)
        return ":".join(parts)


def flow_payload(flow: Flow, action: str, value: str = "") -> str:
    return CallbackData(flow=flow, action=action, value=value).encode()


def parse_callback(raw: Optional[str]) -> Optional[CallbackData]:
    """Parse `flow:<flow>:<action>[:<value>]`; None when malformed."""
    if not raw or not isinstance(raw, str):
        return None
    parts = raw.split(":")
    if len(parts) < 3 or parts[0] != "flow":
        return None
    _, flow_raw, action, *rest = parts
    value = rest[0] if rest else ""
    try:
        flow = Flow(flow_raw)
    except ValueError:
        if action not in ("menu", "cancel"):
            return None
        flow = None
    return CallbackData(flow=flow, action=action, value=value)


# ---------------------------------------------------------------- listings / matches

class ListingView(BaseModel):
    """What matching and scoring see of a listing."""
    id: str = ""
    type: str
    category: Optional[str] = None
    title: str = ""
    lat: Optional[float] = None
    lng: Optional[float] = None
    occurred_at: Optional[str] = None
    created_at: Optional[datetime] = None


class MatchCandidate(BaseModel):
    id: str
    title: str
    score: float
    created_at: Optional[datetime] = None


class PublicListing(BaseModel):
    id: str
    type: str
    category: str
    title: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    created_at: Optional[datetime] = None
