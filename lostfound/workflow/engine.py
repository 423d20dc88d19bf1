# lostfound/workflow/engine.py
import logging
from typing import Optional

from pydantic import ValidationError

from lostfound.catalog import Catalog
from lostfound.schemas import Flow, InboundEvent, Outcome, SessionPayload, parse_callback
from lostfound.services.publish import PublishPipeline
from lostfound.stores import SessionStore, UserStore
from lostfound.vault import SecretVault
from lostfound.workflow import render
from lostfound.workflow.handlers import HANDLERS, StepHandler
from lostfound.workflow.locks import KeyedLocks
from lostfound.workflow.steps import Runtime, Step, StepKind

logger = logging.getLogger(__name__)

CANCEL_KEYWORDS = ("/cancel", "cancel")


class WorkflowEngine:
    """Per-user report wizard. `handle` never raises."""

    def __init__(self, catalog: Catalog, sessions: SessionStore, users: UserStore,
                 vault: SecretVault, publisher: PublishPipeline, front_url: str = ""):
        self.catalog = catalog
        self.sessions = sessions
        self.users = users
        self.vault = vault
        self.publisher = publisher
        self.front_url = front_url
        self.locks = KeyedLocks()
        self.handlers: dict[StepKind, StepHandler] = {cls.kind: cls(self) for cls in HANDLERS}
        missing = set(StepKind) - set(self.handlers)
        if missing:
            raise RuntimeError(f"no handler for steps: {sorted(k.value for k in missing)}")

    # ------------------------------------------------------------------ entry

    async def handle(self, event: InboundEvent) -> Outcome:
        out = Outcome()
        try:
            async with self.locks.hold(event.user_id):
                if event.kind == "callback":
                    await self._on_callback(event, out)
                else:
                    await self._on_message(event, out)
        except Exception:
            logger.exception("failed to handle %s event from %s", event.kind, event.user_id)
            if event.kind == "callback":
                out.notification = "Something went wrong, please try later"
            else:
                out.say("Something went wrong. Try again or send /cancel.")
        return out

    async def _on_message(self, event: InboundEvent, out: Outcome) -> None:
        lower = event.lower_text
        user_id = await self.users.ensure(event.user_id, event.username)

        if event.kind == "cancel" or lower in CANCEL_KEYWORDS:
            await self.sessions.delete(user_id)
            self.menu(out, "Dialog stopped. Back to the main menu.")
            return

        if lower == "/start":
            self.menu(out, "👋 Welcome to Lost & Found!\n\nReport a lost item or help return a found one.")
            return

        rt = await self.load(user_id)
        if rt is None:
            await self._idle_message(user_id, event, out)
            return
        if rt is False:
            out.say("This step is not supported. Send /cancel to start over.")
            return

        await self.handlers[rt.step.kind].on_message(rt, event, out)

    async def _idle_message(self, user_id: str, event: InboundEvent, out: Outcome) -> None:
        lower = event.lower_text
        for flow in Flow:
            if self.catalog.matches_flow_keyword(lower, flow):
                await self.start_flow(user_id, flow, out)
                return
        if not event.text.strip():
            self.menu(out)
            return
        out.say("For now I only understand the menu. Press \"Lost\" or \"Found\".", render.main_menu_keyboard(self.front_url))

    async def _on_callback(self, event: InboundEvent, out: Outcome) -> None:
        data = parse_callback(event.callback_payload)
        if data is None:
            out.notification = "Unknown action"
            return

        user_id = await self.users.ensure(event.user_id, event.username)

        if data.action == "start" and data.flow is not None:
            out.notification = f"Scenario \"{self.catalog.copy[data.flow].label}\""
            await self.start_flow(user_id, data.flow, out)
            return

        if data.action == "menu":
            await self.sessions.delete(user_id)
            out.notification = "Main menu"
            self.menu(out)
            return

        if data.action == "cancel":
            await self.sessions.delete(user_id)
            out.notification = "Scenario cancelled"
            self.menu(out, "OK, nothing is published. Back to the menu.")
            return

        rt = await self.load(user_id)
        if rt is None:
            out.notification = "Choose a scenario first"
            self.menu(out)
            return
        if rt is False:
            out.notification = "This step has no buttons. Send /cancel."
            return
        if rt.flow != data.flow:
            out.notification = "This button belongs to another scenario. Send /cancel."
            return

        await self.handlers[rt.step.kind].on_callback(rt, data, out)

    # ------------------------------------------------------------------ state

    async def load(self, user_id: str):
        """Runtime for the stored session; None when idle, False when the record is unusable."""
        record = await self.sessions.get(user_id)
        if record is None:
            return None
        step = Step.parse(record.step)
        if step is None:
            logger.warning("user %s has unknown step %r", user_id, record.step)
            return False
        try:
            payload = SessionPayload.model_validate(record.payload)
        except ValidationError:
            logger.warning("user %s has an unreadable payload at %s", user_id, record.step)
            return False
        return Runtime(user_id, step, payload)

    async def save(self, user_id: str, step: Step, payload: SessionPayload) -> None:
        await self.sessions.upsert(user_id, step.name, payload.model_dump(mode="json"))

    async def start_flow(self, user_id: str, flow: Flow, out: Outcome) -> None:
        await self.sessions.delete(user_id)
        copy = self.catalog.copy[flow]
        out.say(f"{copy.emoji} Starting the \"{copy.label}\" scenario.")
        await self.goto(user_id, flow, StepKind.CATEGORY, SessionPayload.start(flow), out)

    async def goto(self, user_id: str, flow: Flow, kind: StepKind, payload: SessionPayload, out: Outcome) -> None:
        """Persist (step, payload), then render the step's prompt.

        The attributes step falls through to photos once every field has an answer.
        """
        if kind is StepKind.ATTRIBUTES:
            draft = payload.listing
            if not draft.category:
                out.say("Pick a category first.")
                kind = StepKind.CATEGORY
            elif self.catalog.next_unanswered(draft.category, draft.attributes) is None:
                kind = StepKind.PHOTO

        step = Step(flow, kind)
        await self.save(user_id, step, payload)
        self.handlers[kind].enter(Runtime(user_id, step, payload), out)

    def menu(self, out: Outcome, intro: Optional[str] = "Choose an action:") -> None:
        out.say(intro, render.main_menu_keyboard(self.front_url))
