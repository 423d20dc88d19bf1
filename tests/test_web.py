import httpx

from lostfound.web.server import create_app


async def seed(listings):
    for type, category, lat in (("LOST", "pet", 55.7512), ("FOUND", "pet", 55.76), ("FOUND", "keys", 55.77)):
        await listings.insert_listing({
            "author_id": "a", "type": type, "category": category,
            "title": f"{type.title()}: {category}", "lat": lat, "lng": 37.62,
        })
    await listings.insert_listing({
        "author_id": "a", "type": "FOUND", "category": "pet", "title": "Closed", "lat": 1.0, "lng": 1.0,
        "status": "CLOSED",
    })


def client(listings):
    app = create_app(listings, "https://map.example.org")
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


async def test_healthz(listings):
    async with client(listings) as c:
        r = await c.get("/healthz")
    assert r.json() == {"ok": True}


async def test_listings_feed_filters(listings):
    await seed(listings)
    async with client(listings) as c:
        everything = (await c.get("/listings")).json()
        found_pets = (await c.get("/listings", params={"type": "FOUND", "category": "pet"})).json()
        one = (await c.get("/listings", params={"limit": 1})).json()

    assert {item["title"] for item in everything} == {"Lost: pet", "Found: pet", "Found: keys"}
    assert [item["title"] for item in found_pets] == ["Found: pet"]
    assert len(one) == 1
    assert set(everything[0]) == {"id", "type", "category", "title", "lat", "lng", "created_at"}


async def test_listings_rejects_bad_params(listings):
    async with client(listings) as c:
        assert (await c.get("/listings", params={"type": "STOLEN"})).status_code == 422
        assert (await c.get("/listings", params={"limit": 0})).status_code == 422
