# src/languages/__init__.py

from .base import Texts
from .en import TEXTS_EN
from .ru import TEXTS_RU

LANGS = {
    "ru": TEXTS_RU,
    "en": TEXTS_EN,
}


def get_texts(lang_code: str) -> Texts:
    return LANGS.get(lang_code, TEXTS_RU)
