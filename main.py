# main.py — PTB (async) + FastAPI on one event loop
import asyncio
import logging

import uvicorn
from lostfound.config import settings
from lostfound.db import init_db, SessionLocal
from lostfound.bot.handlers import build_app as build_bot_app
from lostfound.catalog import default_catalog
from lostfound.matching import MatchingEngine
from lostfound.scoring import score
from lostfound.services.publish import PublishPipeline
from lostfound.stores import SqlListingStore, SqlSessionStore, SqlUserStore
from lostfound.vault import SecretVault
from lostfound.web.server import create_app as create_web_app
from lostfound.workflow.engine import WorkflowEngine

logger = logging.getLogger(__name__)
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL))

def build_engine() -> tuple[WorkflowEngine, SqlListingStore]:
    catalog = default_catalog()
    sessions = SqlSessionStore(SessionLocal)
    listings = SqlListingStore(SessionLocal)
    matcher = MatchingEngine(
        listings,
        score,
        radius_km=settings.MATCH_RADIUS_KM,
        min_score=settings.MATCH_MIN_SCORE,
        limit=settings.MATCH_LIMIT,
        candidate_limit=settings.MATCH_CANDIDATE_LIMIT,
    )
    engine = WorkflowEngine(
        catalog,
        sessions,
        SqlUserStore(SessionLocal),
        SecretVault.from_setting(settings.SECRETS_KEY),
        PublishPipeline(catalog, sessions, listings, matcher),
        front_url=settings.FRONT_URL,
    )
    return engine, listings

async def run():
    # 1) DB
    await init_db()
    engine, listings = build_engine()

    # 2) Telegram bot (PTB 20/21 async pattern)
    application = await build_bot_app(engine)
    await application.initialize()
    await application.start()
    await application.updater.start_polling()

    # 3) FastAPI via Uvicorn (blocks until Ctrl+C / shutdown)
    web_app = create_web_app(listings, settings.FRONT_URL)
    server = uvicorn.Server(
        uvicorn.Config(
            web_app,
            host=settings.WEB_HOST,
            port=settings.WEB_PORT,
            log_level=settings.LOG_LEVEL.lower(),
        )
    )

    try:
        await server.serve()
    finally:
        try:
            await application.updater.stop()
        except Exception:
            logger.exception("updater did not stop cleanly")
        await application.stop()
        await application.shutdown()

if __name__ == "__main__":
    try:
        asyncio.run(run())
    except (KeyboardInterrupt, SystemExit):
        pass
