# lostfound/web/server.py
from typing import Literal, Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware

from lostfound.schemas import PublicListing
from lostfound.stores import SqlListingStore

def create_app(listings: SqlListingStore, front_url: str = "") -> FastAPI:
    app = FastAPI(title="Lost & Found Radar")

    if front_url:
        app.add_middleware(CORSMiddleware, allow_origins=[front_url], allow_methods=["GET"])

    @app.get("/healthz")
    async def healthz():
        return {"ok": True}

    # feed for the map; FOUND coordinates are the generalized ones
    @app.get("/listings", response_model=list[PublicListing])
    async def list_listings(
        type: Optional[Literal["LOST", "FOUND"]] = None,
        category: Optional[str] = None,
        limit: int = Query(200, ge=1, le=500),
    ):
        return await listings.list_public(type=type, category=category, limit=limit)

    return app
