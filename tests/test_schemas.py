import pytest
from pydantic import ValidationError

from lostfound.schemas import (
    CallbackData,
    Flow,
    ListingDraft,
    PhotoAttachment,
    SessionPayload,
    flow_payload,
    parse_callback,
)


def photos(*ids):
    return [PhotoAttachment(id=i, token=i) for i in ids]


def test_photos_capped_and_deduplicated():
    draft = ListingDraft.empty(Flow.LOST)
    draft, added, skipped = draft.with_photos(photos("a", "b", "a"))
    assert (added, skipped) == (2, 1)
    draft, added, skipped = draft.with_photos(photos("b", "c", "d", "e"))
    assert (added, skipped) == (1, 3)
    assert [p.id for p in draft.photos] == ["a", "b", "c"]


def test_builders_do_not_touch_the_original():
    draft = ListingDraft.empty(Flow.FOUND).with_category("pet")
    answered = draft.with_answer("species", "cat")
    assert draft.attributes == {}
    assert answered.attributes == {"species": "cat"}
    with pytest.raises(ValidationError):
        draft.category = "keys"


def test_skip_is_explicit_null():
    draft = ListingDraft.empty(Flow.LOST).with_category("pet").with_answer("breed", None)
    assert "breed" in draft.attributes and draft.attributes["breed"] is None
    assert "species" not in draft.attributes


def test_pending_secret_replaced_per_key_and_capped():
    draft = ListingDraft.empty(Flow.LOST)
    draft = draft.with_answer("serial_hint", "4821", secret_hint=True)
    draft = draft.with_answer("serial_hint", "9999", secret_hint=True)
    assert [(p.key, p.value) for p in draft.pending_secrets] == [("serial_hint", "9999")]

    for key in ("a", "b", "c"):
        draft = draft.with_answer(key, key, secret_hint=True)
    assert len(draft.pending_secrets) == 3

    skipped = draft.with_answer("serial_hint", None, secret_hint=True)
    assert "serial_hint" not in [p.key for p in skipped.pending_secrets]


def test_category_change_resets_answers():
    draft = ListingDraft.empty(Flow.LOST).with_category("phone")
    draft = draft.with_answer("serial_hint", "1234", secret_hint=True)
    reset = draft.with_category("keys")
    assert reset.attributes == {} and reset.pending_secrets == ()


def test_secrets_capped_and_pending_cleared():
    draft = ListingDraft.empty(Flow.LOST).with_answer("serial_hint", "1", secret_hint=True)
    draft = draft.with_secrets(["a", "b", "c", "d"], [{"type": "plain", "value": v} for v in "abcd"])
    assert draft.secrets == ("a", "b", "c")
    assert len(draft.encrypted_secrets) == 3
    assert draft.pending_secrets == ()


def test_payload_survives_json_round_trip():
    payload = SessionPayload.start(Flow.FOUND)
    draft, _, _ = payload.listing.with_category("bag").with_answer("type", None).with_photos(photos("x"))
    payload = payload.with_listing(draft)
    restored = SessionPayload.model_validate(payload.model_dump(mode="json"))
    assert restored == payload
    assert restored.listing.attributes == {"type": None}


@pytest.mark.parametrize("raw,expected", [
    ("flow:lost:start", CallbackData(flow=Flow.LOST, action="start")),
    ("flow:found:category:pet", CallbackData(flow=Flow.FOUND, action="category", value="pet")),
    ("flow:found:confirm:publish", CallbackData(flow=Flow.FOUND, action="confirm", value="publish")),
    ("flow:other:menu", CallbackData(flow=None, action="menu")),
])
def test_parse_callback(raw, expected):
    assert parse_callback(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "flow:lost", "menu:lost:start", "flow:other:start", "flow:other:category:pet"])
def test_parse_callback_rejects(raw):
    assert parse_callback(raw) is None


def test_flow_payload_encodes():
    assert flow_payload(Flow.LOST, "category", "keys") == "flow:lost:category:keys"
    assert flow_payload(Flow.FOUND, "cancel") == "flow:found:cancel"
