# lostfound/workflow/handlers.py
"""Behaviour of each workflow step.

`enter` renders the step's prompt; `on_message` / `on_callback` build the next
payload and hand it to the engine, which persists it before anything is sent.
"""
from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from lostfound.privacy import generalize
from lostfound.schemas import CallbackData, InboundEvent, Outcome, PHOTO_LIMIT, SECRET_LIMIT
from lostfound.workflow import render
from lostfound.workflow.steps import Runtime, StepKind

if TYPE_CHECKING:
    from lostfound.workflow.engine import WorkflowEngine

logger = logging.getLogger(__name__)

SKIP = "/skip"
NEXT_COMMANDS = ("/next", "next", "done")
_SECRET_SPLIT = re.compile(r"\r?\n|[,;]")


def split_secrets(text: str) -> list[str]:
    return [item.strip() for item in _SECRET_SPLIT.split(text or "") if item.strip()]


class StepHandler:
    kind: StepKind

    def __init__(self, engine: "WorkflowEngine"):
        self.engine = engine
        self.catalog = engine.catalog

    def enter(self, rt: Runtime, out: Outcome) -> None:
        pass

    async def on_message(self, rt: Runtime, event: InboundEvent, out: Outcome) -> None:
        out.say("Please use the buttons above.")

    async def on_callback(self, rt: Runtime, data: CallbackData, out: Outcome) -> None:
        out.notification = "No buttons on this step"


class CategoryStep(StepHandler):
    kind = StepKind.CATEGORY

    def enter(self, rt, out):
        out.say(render.category_prompt(self.catalog, rt.flow), render.category_keyboard(self.catalog, rt.flow))

    async def on_message(self, rt, event, out):
        out.say("Use the buttons to pick a category.")

    async def on_callback(self, rt, data, out):
        if data.action != "category":
            out.notification = "Action not available"
            return
        option = self.catalog.option(data.value)
        if option is None:
            out.notification = "Unknown category"
            return
        payload = rt.payload.with_listing(rt.payload.listing.with_category(option.id))
        out.notification = f"{option.emoji} {option.title}"
        await self.engine.goto(rt.user_id, rt.flow, StepKind.ATTRIBUTES, payload, out)


class AttributesStep(StepHandler):
    kind = StepKind.ATTRIBUTES

    def enter(self, rt, out):
        draft = rt.payload.listing
        field = self.catalog.next_unanswered(draft.category, draft.attributes)
        if field is not None:
            out.say(render.attribute_prompt(self.catalog, rt.flow, field, first=not draft.attributes))

    async def on_message(self, rt, event, out):
        draft = rt.payload.listing
        if not draft.category:
            out.say("Pick a category first.")
            await self.engine.goto(rt.user_id, rt.flow, StepKind.CATEGORY, rt.payload, out)
            return

        field = self.catalog.next_unanswered(draft.category, draft.attributes)
        if field is None:
            await self.engine.goto(rt.user_id, rt.flow, StepKind.PHOTO, rt.payload, out)
            return

        text = event.text.strip()
        is_skip = event.lower_text == SKIP
        if not is_skip and field.required and len(text) < 2:
            out.say("Please add a bit more detail. If you'd rather not answer, send /skip.")
            return
        if not is_skip and not text:
            out.say("If you have nothing to add, send /skip.")
            return

        value = None if is_skip else text
        listing = draft.with_answer(field.key, value, secret_hint=field.store_as_secret_hint)
        await self.engine.goto(rt.user_id, rt.flow, StepKind.ATTRIBUTES, rt.payload.with_listing(listing), out)


class PhotoStep(StepHandler):
    kind = StepKind.PHOTO

    def enter(self, rt, out):
        out.say(render.photo_prompt(self.catalog, rt.flow, len(rt.payload.listing.photos)))

    async def on_message(self, rt, event, out):
        lower = event.lower_text
        photos = rt.payload.listing.photos

        if lower == SKIP:
            out.say("OK, skipping the photo step.")
            await self.engine.goto(rt.user_id, rt.flow, StepKind.LOCATION, rt.payload, out)
            return

        if lower in NEXT_COMMANDS:
            if not photos:
                out.say("No photos yet. Attach at least one or send /skip.")
                return
            out.say("Photos saved. Moving on.")
            await self.engine.goto(rt.user_id, rt.flow, StepKind.LOCATION, rt.payload, out)
            return

        if not event.photos:
            out.say("I don't see a photo. Attach an image or send /skip.")
            return

        listing, added, skipped = rt.payload.listing.with_photos(event.photos, PHOTO_LIMIT)
        if added == 0:
            out.say("The limit is reached or these photos are already added. When ready send /next or /skip.")
            return

        payload = rt.payload.with_listing(listing)
        count = len(listing.photos)
        if count >= PHOTO_LIMIT:
            out.say(f"Great! That's the limit of {PHOTO_LIMIT} photos. On to the location.")
            await self.engine.goto(rt.user_id, rt.flow, StepKind.LOCATION, payload, out)
            return

        await self.engine.save(rt.user_id, rt.step, payload)
        extra = f" Some photos were not saved: the limit is {PHOTO_LIMIT}." if skipped else ""
        out.say(f"Photos saved: {count}/{PHOTO_LIMIT}. Add more or send /next.{extra}")


class LocationStep(StepHandler):
    kind = StepKind.LOCATION

    def enter(self, rt, out):
        out.say(render.location_prompt(self.catalog, rt.flow))

    async def on_message(self, rt, event, out):
        note = event.text.strip()
        point = event.coordinate

        if event.lower_text == SKIP:
            out.say("OK, skipping the place. You can add it later.")
            await self.engine.goto(rt.user_id, rt.flow, StepKind.SECRETS, rt.payload, out)
            return

        if not note and point is None:
            out.say("Describe the place in text or share a location.")
            return

        public, original = generalize(rt.flow, point)
        listing = rt.payload.listing.with_location(note=note, public=public, original=original)
        await self.engine.goto(rt.user_id, rt.flow, StepKind.SECRETS, rt.payload.with_listing(listing), out)


class SecretsStep(StepHandler):
    kind = StepKind.SECRETS

    def enter(self, rt, out):
        out.say(render.secrets_prompt(self.catalog, rt.flow, rt.payload.listing))

    async def on_message(self, rt, event, out):
        if event.lower_text == SKIP:
            secrets = []
        else:
            secrets = split_secrets(event.text)[:SECRET_LIMIT]
            if not secrets:
                out.say("Send each item on its own line, or /skip.")
                return

        try:
            encrypted = self.engine.vault.encrypt(secrets)
        except Exception:
            logger.exception("secret encryption failed for %s", rt.user_id)
            encrypted = []

        listing = rt.payload.listing.with_secrets(secrets, encrypted)
        await self.engine.goto(rt.user_id, rt.flow, StepKind.CONFIRM, rt.payload.with_listing(listing), out)


class ConfirmStep(StepHandler):
    kind = StepKind.CONFIRM

    def enter(self, rt, out):
        out.say(render.summary(self.catalog, rt.flow, rt.payload.listing), render.confirm_keyboard(rt.flow))

    async def on_callback(self, rt, data, out):
        if data.action != "confirm":
            out.notification = "Action not available"
            return

        if data.value == "publish":
            out.notification = "Publishing..."
            try:
                result = await self.engine.publisher.publish(rt.user_id, rt.payload)
            except Exception:
                logger.exception("publish failed for %s", rt.user_id)
                out.say("⚠️ Could not publish the listing. Please try again later.")
                return
            out.say(f"✅ Listing published!\nID: {result.listing_id}")
            out.say(render.matches_text(self.catalog, rt.flow, result.matches))
            self.engine.menu(out, "What's next?")
            return

        if data.value == "edit":
            out.notification = "Back to the description"
            await self.engine.goto(rt.user_id, rt.flow, StepKind.ATTRIBUTES, rt.payload, out)
            return

        out.notification = "Unknown action"


HANDLERS = (CategoryStep, AttributesStep, PhotoStep, LocationStep, SecretsStep, ConfirmStep)
