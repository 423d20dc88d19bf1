# lostfound/bot/keyboards.py
from typing import Optional

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from lostfound.schemas import Button

def to_button(b: Button) -> InlineKeyboardButton:
    if b.url:
        return InlineKeyboardButton(text=b.label, url=b.url)
    return InlineKeyboardButton(text=b.label, callback_data=b.callback)

def grid_keyboard(rows) -> Optional[InlineKeyboardMarkup]:
    """rows: [[Button, ...], ...]"""
    if not rows:
        return None
    kb = [[to_button(b) for b in row] for row in rows]
    return InlineKeyboardMarkup(kb)
