# src/languages/en.py

from .base import Texts

TEXTS_EN = Texts(
    start_hint="Tell us your nickname and describe what you need help with.",
    generic_user_title="TG User: {user_id}",
)
