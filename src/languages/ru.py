# src/languages/ru.py

from .base import Texts

TEXTS_RU = Texts(
    start_hint="Укажите свой ник и напишите, с чем вам помочь.",
    generic_user_title="TG User: {user_id}",
)
