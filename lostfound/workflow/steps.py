# lostfound/workflow/steps.py
from enum import Enum
from typing import NamedTuple, Optional

from lostfound.schemas import Flow, SessionPayload


class StepKind(str, Enum):
    CATEGORY = "category"
    ATTRIBUTES = "attributes"
    PHOTO = "photo"
    LOCATION = "location"
    SECRETS = "secrets"
    CONFIRM = "confirm"


class Step(NamedTuple):
    flow: Flow
    kind: StepKind

    @property
    def name(self) -> str:
        return f"{self.flow.value}_{self.kind.value}"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["Step"]:
        """`found_photo` -> Step(FOUND, PHOTO); None for anything unknown."""
        if not raw or "_" not in raw:
            return None
        flow_raw, kind_raw = raw.split("_", 1)
        try:
            return cls(Flow(flow_raw), StepKind(kind_raw))
        except ValueError:
            return None


class Runtime(NamedTuple):
    """One user's position in the workflow while an event is handled."""
    user_id: str
    step: Step
    payload: SessionPayload

    @property
    def flow(self) -> Flow:
        return self.payload.flow
