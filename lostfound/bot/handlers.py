# lostfound/bot/handlers.py
import logging

from telegram import Update, Message
from telegram.error import TelegramError
from telegram.ext import Application, CallbackQueryHandler, ContextTypes, MessageHandler, filters

from lostfound.bot.keyboards import grid_keyboard
from lostfound.config import settings
from lostfound.schemas import Coordinate, InboundEvent, Outcome, PhotoAttachment
from lostfound.workflow.engine import CANCEL_KEYWORDS, WorkflowEngine

logger = logging.getLogger(__name__)

def message_event(update: Update) -> InboundEvent:
    msg: Message = update.effective_message
    user = update.effective_user
    text = msg.text or msg.caption or ""

    coordinate = None
    if msg.location:
        coordinate = Coordinate(lat=msg.location.latitude, lng=msg.location.longitude)

    photos = ()
    if msg.photo:
        # one photo arrives in several sizes; keep the largest
        largest = msg.photo[-1]
        photos = (PhotoAttachment(id=largest.file_unique_id, token=largest.file_id),)

    kind = "cancel" if text.strip().lower() in CANCEL_KEYWORDS else "text"
    return InboundEvent(
        kind=kind,
        user_id=user.id,
        username=user.username,
        text=text,
        coordinate=coordinate,
        photos=photos,
    )

def callback_event(update: Update) -> InboundEvent:
    user = update.effective_user
    return InboundEvent(
        kind="callback",
        user_id=user.id,
        username=user.username,
        callback_payload=update.callback_query.data,
    )

async def deliver(update: Update, ctx: ContextTypes.DEFAULT_TYPE, outcome: Outcome):
    chat_id = update.effective_chat.id
    for reply in outcome.replies:
        await ctx.bot.send_message(chat_id=chat_id, text=reply.text, reply_markup=grid_keyboard(reply.keyboard))

async def on_message(update: Update, ctx: ContextTypes.DEFAULT_TYPE):
    if update.effective_user is None or update.effective_message is None:
        return
    engine: WorkflowEngine = ctx.bot_data["engine"]
    outcome = await engine.handle(message_event(update))
    await deliver(update, ctx, outcome)

async def on_callback(update: Update, ctx: ContextTypes.DEFAULT_TYPE):
    q = update.callback_query
    engine: WorkflowEngine = ctx.bot_data["engine"]
    outcome = await engine.handle(callback_event(update))
    try:
        await q.answer(outcome.notification)
    except TelegramError as e:
        logger.warning("callback answer failed: %s", e)
    await deliver(update, ctx, outcome)

async def on_error(update: object, ctx: ContextTypes.DEFAULT_TYPE):
    logger.error("telegram update %s failed", getattr(update, "update_id", "?"), exc_info=ctx.error)

async def build_app(engine: WorkflowEngine) -> Application:
    app = Application.builder().token(settings.TELEGRAM_BOT_TOKEN).build()
    app.bot_data["engine"] = engine
    app.add_handler(CallbackQueryHandler(on_callback))
    app.add_handler(MessageHandler(filters.TEXT | filters.PHOTO | filters.LOCATION | filters.COMMAND, on_message))
    app.add_error_handler(on_error)
    return app
