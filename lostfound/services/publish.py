# lostfound/services/publish.py
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from lostfound.catalog import Catalog
from lostfound.matching import MatchingEngine
from lostfound.schemas import Flow, ListingDraft, ListingView, MatchCandidate, PhotoAttachment, SessionPayload
from lostfound.stores import ListingStore, SessionStore
from lostfound.utils.dates import format_occurred_at
from lostfound.utils.geo import normalize_coordinate

logger = logging.getLogger(__name__)

FOUND_DISCLAIMER = "The exact point is shared with the owner after verification."
PHOTO_TOKEN_PREFIX = "tg-photo-token:"


class PublishError(Exception):
    pass


@dataclass
class PublishResult:
    listing_id: str
    matches: list[MatchCandidate]


def photo_url(photo: PhotoAttachment) -> Optional[str]:
    if photo.url:
        return photo.url
    if photo.token:
        return f"{PHOTO_TOKEN_PREFIX}{photo.token}"
    return None


def build_listing_fields(catalog: Catalog, flow: Flow, draft: ListingDraft,
                         now: Optional[datetime] = None) -> dict:
    """Row fields plus the photo urls and secret records of a finished draft."""
    if not draft.category:
        raise PublishError("no category selected")

    attributes = draft.attributes
    primary = next(
        (f for f in catalog.fields(draft.category)
         if attributes.get(f.key) is not None and str(attributes[f.key]).strip()),
        None,
    )
    subject = str(attributes[primary.key]).strip() if primary else catalog.title(draft.category)
    title = f"{'Lost' if flow is Flow.LOST else 'Found'}: {subject}"

    parts = []
    lines = catalog.attribute_lines(draft.category, attributes)
    if lines:
        parts.append("Details:")
        parts.extend(f"- {line}" for line in lines)
    if draft.location_note:
        parts.append(f"Location: {draft.location_note}")
    if flow is Flow.FOUND:
        parts.append(FOUND_DISCLAIMER)

    photos = [u for u in (photo_url(p) for p in draft.photos) if u][:3]
    secrets = [s for s in draft.encrypted_secrets if s][:3]

    return {
        "type": draft.type,
        "category": draft.category,
        "title": title,
        "description": "\n".join(parts),
        "lat": normalize_coordinate(draft.location.lat if draft.location else None),
        "lng": normalize_coordinate(draft.location.lng if draft.location else None),
        "occurred_at": format_occurred_at(draft.occurred_at, now),
        "photos": photos,
        "secrets": secrets,
    }


class PublishPipeline:
    def __init__(self, catalog: Catalog, sessions: SessionStore, listings: ListingStore, matcher: MatchingEngine):
        self.catalog = catalog
        self.sessions = sessions
        self.listings = listings
        self.matcher = matcher

    async def publish(self, author_id: Optional[str], payload: SessionPayload) -> PublishResult:
        """Persist the draft, look for counterparts, then end the session.

        Any failure leaves the session as it was so the user can retry.
        """
        if not author_id:
            raise PublishError("author could not be resolved")

        fields = build_listing_fields(self.catalog, payload.flow, payload.listing)
        photos = fields.pop("photos")
        secrets = fields.pop("secrets")

        listing_id = await self.listings.insert_listing({"author_id": author_id, **fields})
        try:
            for url in photos:
                await self.listings.insert_photo(listing_id, url)
            for record in secrets:
                await self.listings.insert_secret(listing_id, record)
        except Exception:
            logger.exception("publish %s: dependent rows failed, removing partial listing", listing_id)
            await self.listings.delete_listing(listing_id)
            raise

        logger.info("published %s listing %s (%d photos, %d secrets)", fields["type"], listing_id, len(photos), len(secrets))

        # the listing is committed at this point; matching only adds suggestions
        try:
            matches = await self.matcher.find_matches(ListingView(
                id=listing_id,
                type=fields["type"],
                category=fields["category"],
                title=fields["title"],
                lat=fields["lat"],
                lng=fields["lng"],
                occurred_at=fields["occurred_at"],
                created_at=datetime.now(timezone.utc),
            ))
        except Exception:
            logger.exception("publish %s: matching failed", listing_id)
            matches = []

        await self.sessions.delete(author_id)
        return PublishResult(listing_id=listing_id, matches=matches)
