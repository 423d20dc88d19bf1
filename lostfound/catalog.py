# lostfound/catalog.py
"""Categories, their attribute fields and the per-flow copy of the bot.

The catalog is built once at start-up (`default_catalog()`) and handed to the
workflow engine and the publish pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from lostfound.schemas import Flow

Text = Union[str, Mapping[str, str]]


@dataclass(frozen=True)
class AttributeField:
    key: str
    label: str
    question: Text
    hint: Optional[Text] = None
    required: bool = False
    store_as_secret_hint: bool = False


@dataclass(frozen=True)
class CategoryOption:
    id: str
    title: str
    emoji: str


@dataclass(frozen=True)
class FlowCopy:
    emoji: str
    label: str
    category_prompt: str
    attributes_prompt: str
    photo_prompt: str
    location_prompt: str
    secrets_prompt: str
    secrets_label: str
    summary_title: str
    matches_heading: str


def _resolve(text: Optional[Text], flow: Flow) -> str:
    if not text:
        return ""
    if isinstance(text, str):
        return text
    return text.get(flow.value) or text.get("default") or ""


@dataclass(frozen=True)
class Catalog:
    options: tuple[CategoryOption, ...]
    field_sets: Mapping[str, tuple[AttributeField, ...]]
    copy: Mapping[Flow, FlowCopy]
    flow_keywords: Mapping[Flow, tuple[str, ...]] = field(default_factory=dict)

    def option(self, category_id: Optional[str]) -> Optional[CategoryOption]:
        return next((o for o in self.options if o.id == category_id), None)

    def describe(self, category_id: Optional[str]) -> str:
        if not category_id:
            return "—"
        opt = self.option(category_id)
        return f"{opt.emoji} {opt.title}" if opt else category_id

    def title(self, category_id: str) -> str:
        opt = self.option(category_id)
        return opt.title if opt else category_id

    def fields(self, category: Optional[str]) -> tuple[AttributeField, ...]:
        if not category:
            return ()
        return self.field_sets.get(category, ())

    def field_by_key(self, category: Optional[str], key: str) -> Optional[AttributeField]:
        return next((f for f in self.fields(category) if f.key == key), None)

    def next_unanswered(self, category: Optional[str], attributes: Mapping[str, Optional[str]]) -> Optional[AttributeField]:
        """First field in declared order whose key is absent. A skipped (None) answer counts as answered."""
        return next((f for f in self.fields(category) if f.key not in attributes), None)

    def question_for(self, f: AttributeField, flow: Flow) -> str:
        return _resolve(f.question, flow)

    def hint_for(self, f: AttributeField, flow: Flow) -> str:
        return _resolve(f.hint, flow)

    def attribute_lines(self, category: Optional[str], attributes: Mapping[str, Optional[str]]) -> list[str]:
        lines = []
        for f in self.fields(category):
            if f.key not in attributes:
                continue
            value = attributes[f.key]
            if value is None or not str(value).strip():
                lines.append(f"{f.label}: (skipped)")
            else:
                lines.append(f"{f.label}: {str(value).strip()}")
        return lines

    def matches_flow_keyword(self, lower: str, flow: Flow) -> bool:
        return any(lower == kw or lower.startswith(f"{kw} ") for kw in self.flow_keywords.get(flow, ()))


CATEGORY_OPTIONS = (
    CategoryOption("pet", "Pet", "🐾"),
    CategoryOption("phone", "Electronics", "📱"),
    CategoryOption("bag", "Bag / accessory", "🎒"),
    CategoryOption("document", "Documents", "📄"),
    CategoryOption("keys", "Keys", "🔑"),
    CategoryOption("wallet", "Valuables", "💍"),
)

FIELD_SETS = {
    "pet": (
        AttributeField(
            "species", "Species",
            {"lost": "What animal went missing? (species)", "found": "What animal did you find? (species)"},
            hint="E.g. cat, dog, ferret.",
            required=True,
        ),
        AttributeField("breed", "Breed", "What breed? If unsure write \"don't know\" or /skip."),
        AttributeField("color", "Coat / marks", "Describe the coat colour or any distinctive marks.", required=True),
        AttributeField("size", "Size", "Size of the animal (large, medium, small)."),
        AttributeField(
            "nickname", "Name / ID tags",
            {"lost": "What is the pet's name? (if any)", "found": "Is there a collar, tag or other identifying mark?"},
        ),
    ),
    "phone": (
        AttributeField(
            "device", "Device",
            {"lost": "What device was lost? (type, model)", "found": "What device did you find? (type, model)"},
            hint="E.g. iPhone 13 smartphone, Samsung Tab S7 tablet.",
            required=True,
        ),
        AttributeField("color", "Colour", "What colour is the body or case?", required=True),
        AttributeField("condition", "Features", "Any distinctive features: cracks, stickers, a case?"),
        AttributeField(
            "serial_hint", "Unique mark",
            {
                "lost": "Give a unique mark (last digits of the IMEI or a security sticker). It is kept secret.",
                "found": "Describe the unique marks you noticed (without revealing them fully).",
            },
            hint="E.g. IMEI ends with 4821, sticker on the bottom.",
            store_as_secret_hint=True,
        ),
    ),
    "bag": (
        AttributeField("type", "Item type", "What exactly is it? (backpack, handbag, briefcase...)", required=True),
        AttributeField("brand", "Brand", "If there is a brand, write it."),
        AttributeField("color", "Colour / material", "Colour and material? (e.g. black leather)", required=True),
        AttributeField("features", "Distinctive features", "Any distinctive features: patches, keyrings, contents?"),
    ),
    "document": (
        AttributeField("doc_type", "Document type", "Which document? (passport, driving licence, student ID...)", required=True),
        AttributeField(
            "name_hint", "Surname / initials",
            {
                "lost": "Give the initials or surname (no full number).",
                "found": "Whose surname is on the document (if visible)?",
            },
            required=True,
        ),
        AttributeField(
            "extra", "Additional details",
            {
                "lost": "Any other identifiers (issuing office, date)?",
                "found": "What other details are visible? Full numbers are never published.",
            },
        ),
    ),
    "keys": (
        AttributeField("key_type", "Key type", "What keys? (flat, car, intercom, safe...)", required=True),
        AttributeField("bundle", "Keyring / accessories", "Is there a keyring, fob or case? Describe it."),
        AttributeField(
            "unique", "Unique features",
            {
                "lost": "Describe distinctive cuts or marks (only if safe to share).",
                "found": "Describe distinctive features (not enough to make a copy).",
            },
        ),
    ),
    "wallet": (
        AttributeField("item", "Item", "What valuable is it? (wallet, jewellery, gadget...)", required=True),
        AttributeField("looks", "Appearance", "What does it look like? Colour, material, shape.", required=True),
        AttributeField(
            "value_hint", "Unique details",
            {
                "lost": "Any unique details? (a note inside, an engraving; mention it partially)",
                "found": "Describe without revealing everything: an engraving, whose initials?",
            },
        ),
    ),
}

FLOW_COPY = {
    Flow.LOST: FlowCopy(
        emoji="🆘",
        label="Lost",
        category_prompt="What did you lose? Pick a category so we ask the right questions.",
        attributes_prompt="Describe the item: brand, colour, marks. A few sentences are fine.",
        photo_prompt="Attach up to 3 photos that help recognise the item.",
        location_prompt="Where and when did it happen? Write an address, landmarks and time. You can also share a location.",
        secrets_prompt="Think of up to three secret details (one per line) only the owner knows. To skip, send /skip.",
        secrets_label="Secrets",
        summary_title="Draft \"Lost\"",
        matches_heading="Similar found items nearby",
    ),
    Flow.FOUND: FlowCopy(
        emoji="📦",
        label="Found",
        category_prompt="What did you find? Pick a category to help the owner.",
        attributes_prompt="Describe the find safely: no serial numbers or unique marks. Mention its condition.",
        photo_prompt="Attach up to 3 neutral photos of the item (no serial numbers or unique marks).",
        location_prompt="Where did you find it and where is it kept now? For safety give a district or landmark.",
        secrets_prompt="Ask up to three questions for the owner (one per line). Example: \"What keyring was on the backpack?\"",
        secrets_label="Questions",
        summary_title="Draft \"Found\"",
        matches_heading="Similar lost reports nearby",
    ),
}

FLOW_KEYWORDS = {
    Flow.LOST: ("/lost", "lost", "i lost"),
    Flow.FOUND: ("/found", "found", "i found"),
}


def default_catalog() -> Catalog:
    return Catalog(options=CATEGORY_OPTIONS, field_sets=FIELD_SETS, copy=FLOW_COPY, flow_keywords=FLOW_KEYWORDS)
