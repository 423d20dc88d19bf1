# lostfound/workflow/render.py
"""Prompt texts and keyboards of the workflow steps."""
from datetime import datetime, timezone

import humanize

from lostfound.catalog import AttributeField, Catalog
from lostfound.schemas import Button, Flow, ListingDraft, MatchCandidate, PHOTO_LIMIT, flow_payload

ATTRIBUTE_STEP_LABEL = "Step 2/6: description"


def chunk(items, n):
    for i in range(0, len(items), n):
        yield items[i:i+n]


def keyboard(rows) -> tuple:
    return tuple(tuple(row) for row in rows)


def main_menu_keyboard(front_url: str = "") -> tuple:
    rows = [[
        Button(label="🆘 Lost", callback=flow_payload(Flow.LOST, "start")),
        Button(label="📦 Found", callback=flow_payload(Flow.FOUND, "start")),
    ]]
    if front_url.startswith("https://"):
        rows.append([Button(label="🗺️ Open map", url=front_url)])
    return keyboard(rows)


def category_keyboard(catalog: Catalog, flow: Flow) -> tuple:
    buttons = [
        Button(label=f"{o.emoji} {o.title}", callback=flow_payload(flow, "category", o.id))
        for o in catalog.options
    ]
    rows = list(chunk(buttons, 2))
    rows.append([Button(label="❌ Cancel", callback=flow_payload(flow, "cancel"))])
    return keyboard(rows)


def confirm_keyboard(flow: Flow) -> tuple:
    return keyboard([
        [Button(label="✅ Publish", callback=flow_payload(flow, "confirm", "publish"))],
        [
            Button(label="✏️ Edit description", callback=flow_payload(flow, "confirm", "edit")),
            Button(label="❌ Cancel", callback=flow_payload(flow, "cancel")),
        ],
        [Button(label="⬅️ Main menu", callback=flow_payload(flow, "menu"))],
    ])


def category_prompt(catalog: Catalog, flow: Flow) -> str:
    copy = catalog.copy[flow]
    return f"{copy.emoji} {copy.label}\n\n{copy.category_prompt}"


def attribute_prompt(catalog: Catalog, flow: Flow, field: AttributeField, first: bool) -> str:
    copy = catalog.copy[flow]
    lines = []
    if first:
        lines += [f"{copy.emoji} {ATTRIBUTE_STEP_LABEL}", "", copy.attributes_prompt, ""]
    lines.append(catalog.question_for(field, flow))
    hint = catalog.hint_for(field, flow)
    if hint:
        lines.append(f"💡 {hint}")
    if not field.required:
        lines += ["", "You can skip this with /skip."]
    return "\n".join(lines)


def photo_prompt(catalog: Catalog, flow: Flow, count: int) -> str:
    lines = [
        "📸 Step 3/6: photos",
        catalog.copy[flow].photo_prompt,
        "You can send one photo per message.",
        "To skip this step send /skip.",
    ]
    if count > 0:
        lines += ["", f"Already uploaded: {count}/{PHOTO_LIMIT}. Add more or send /next to continue."]
    return "\n".join(lines)


def location_prompt(catalog: Catalog, flow: Flow) -> str:
    copy = catalog.copy[flow]
    return f"{copy.emoji} Step 4/6: place and time\n\n{copy.location_prompt}"


def secrets_prompt(catalog: Catalog, flow: Flow, draft: ListingDraft) -> str:
    copy = catalog.copy[flow]
    lines = [f"{copy.emoji} Step 5/6: {copy.secrets_label.lower()}", "", copy.secrets_prompt]
    if draft.pending_secrets:
        lines += ["", "Hints (from your earlier answers):"]
        lines += [f" - {item.value}" for item in draft.pending_secrets[:3]]
    lines += ["", "Send each one on its own line. To skip, send /skip."]
    return "\n".join(lines)


def _coordinates(draft: ListingDraft) -> str:
    loc = draft.location
    if loc is None:
        return "Coordinates: —"
    text = f"Coordinates: {loc.lat:.5f}°, {loc.lng:.5f}°"
    if loc.precision == "area":
        text += " (approximate area)"
    return text


def summary(catalog: Catalog, flow: Flow, draft: ListingDraft) -> str:
    copy = catalog.copy[flow]
    attribute_lines = catalog.attribute_lines(draft.category, draft.attributes)
    secrets = [" ".join(s.split()) for s in draft.secrets]
    lines = [
        f"Category: {catalog.describe(draft.category)}",
        "Details:\n - " + "\n - ".join(attribute_lines) if attribute_lines else "Details: —",
        f"Photos: {len(draft.photos)}",
        _coordinates(draft),
        f"Location note: {draft.location_note or '—'}",
        f"{copy.secrets_label} ({len(secrets)}): " + ("\n - " + "\n - ".join(secrets) if secrets else "—"),
    ]
    return f"{copy.emoji} Step 6/6: confirmation\n\n{copy.summary_title}\n\n" + "\n".join(lines)


def matches_text(catalog: Catalog, flow: Flow, matches: list[MatchCandidate]) -> str:
    if not matches:
        return "No matches yet. We will let you know as soon as something similar shows up."
    now = datetime.now(timezone.utc)
    items = []
    for m in matches:
        line = f" • {round(m.score)} pts — {m.title}"
        if m.created_at:
            created = m.created_at if m.created_at.tzinfo else m.created_at.replace(tzinfo=timezone.utc)
            line += f" ({humanize.naturaltime(now - created)})"
        items.append(line)
    return f"{catalog.copy[flow].matches_heading}:\n" + "\n".join(items)
