# lostfound/stores.py
"""Storage ports used by the workflow engine and their SQLAlchemy implementations."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lostfound.models import ChatSession, Listing, Photo, Secret, User
from lostfound.schemas import ListingView, PublicListing
from lostfound.utils.geo import BoundingBox


@dataclass(frozen=True)
class SessionRecord:
    step: str
    payload: dict


class SessionStore(Protocol):
    async def get(self, user_id: str) -> Optional[SessionRecord]: ...
    async def upsert(self, user_id: str, step: str, payload: dict) -> None: ...
    async def delete(self, user_id: str) -> None: ...


class ListingStore(Protocol):
    async def insert_listing(self, fields: dict) -> str: ...
    async def insert_photo(self, listing_id: str, url: str) -> None: ...
    async def insert_secret(self, listing_id: str, record: dict) -> None: ...
    async def delete_listing(self, listing_id: str) -> None: ...
    async def query_candidates(self, opposite_type: str, category: Optional[str],
                               box: BoundingBox, limit: int = 50) -> list[ListingView]: ...


class UserStore(Protocol):
    async def ensure(self, tg_user_id: int, username: Optional[str] = None) -> str: ...


class SqlSessionStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    async def get(self, user_id: str) -> Optional[SessionRecord]:
        async with self._sessionmaker() as s:
            row = await s.get(ChatSession, user_id)
            if row is None:
                return None
            return SessionRecord(step=row.step, payload=row.payload or {})

    async def upsert(self, user_id: str, step: str, payload: dict) -> None:
        async with self._sessionmaker() as s:
            row = await s.get(ChatSession, user_id)
            if row is None:
                s.add(ChatSession(user_id=user_id, step=step, payload=payload))
            else:
                row.step = step
                row.payload = payload
            await s.commit()

    async def delete(self, user_id: str) -> None:
        async with self._sessionmaker() as s:
            await s.execute(delete(ChatSession).where(ChatSession.user_id == user_id))
            await s.commit()


def _view(row: Listing) -> ListingView:
    return ListingView(
        id=row.id,
        type=row.type,
        category=row.category,
        title=row.title,
        lat=row.lat,
        lng=row.lng,
        occurred_at=row.occurred_at,
        created_at=row.created_at,
    )


class SqlListingStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    async def insert_listing(self, fields: dict) -> str:
        async with self._sessionmaker() as s:
            listing = Listing(**fields)
            s.add(listing)
            await s.commit()
            return listing.id

    async def insert_photo(self, listing_id: str, url: str) -> None:
        async with self._sessionmaker() as s:
            s.add(Photo(listing_id=listing_id, url=url))
            await s.commit()

    async def insert_secret(self, listing_id: str, record: dict) -> None:
        async with self._sessionmaker() as s:
            s.add(Secret(listing_id=listing_id, cipher=record))
            await s.commit()

    async def delete_listing(self, listing_id: str) -> None:
        async with self._sessionmaker() as s:
            await s.execute(delete(Photo).where(Photo.listing_id == listing_id))
            await s.execute(delete(Secret).where(Secret.listing_id == listing_id))
            await s.execute(delete(Listing).where(Listing.id == listing_id))
            await s.commit()

    async def query_candidates(self, opposite_type: str, category: Optional[str],
                               box: BoundingBox, limit: int = 50) -> list[ListingView]:
        q = select(Listing).where(
            Listing.status == "ACTIVE",
            Listing.type == opposite_type,
            Listing.lat.between(box.min_lat, box.max_lat),
            Listing.lng.between(box.min_lng, box.max_lng),
        )
        if category:
            q = q.where(Listing.category == category)
        q = q.order_by(Listing.created_at.desc()).limit(limit)
        async with self._sessionmaker() as s:
            rows = (await s.execute(q)).scalars().all()
        return [_view(r) for r in rows]

    async def list_public(self, type: Optional[str] = None, category: Optional[str] = None,
                          limit: int = 200) -> list[PublicListing]:
        """Active listings for the map. Coordinates here are already the public ones."""
        q = select(Listing).where(Listing.status == "ACTIVE")
        if type:
            q = q.where(Listing.type == type)
        if category:
            q = q.where(Listing.category == category)
        q = q.order_by(Listing.created_at.desc()).limit(limit)
        async with self._sessionmaker() as s:
            rows = (await s.execute(q)).scalars().all()
        return [
            PublicListing(id=r.id, type=r.type, category=r.category, title=r.title,
                          lat=r.lat, lng=r.lng, created_at=r.created_at)
            for r in rows
        ]


class SqlUserStore:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    async def ensure(self, tg_user_id: int, username: Optional[str] = None) -> str:
        async with self._sessionmaker() as s:
            existing = (await s.execute(select(User).where(User.tg_user_id == tg_user_id))).scalar_one_or_none()
            if existing:
                return existing.id
            user = User(tg_user_id=tg_user_id, username=username or "")
            s.add(user)
            await s.commit()
            return user.id
