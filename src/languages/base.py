# src/languages/base.py
from dataclasses import dataclass

@dataclass
class Texts:
    # ответ на /start в любом чате
    start_hint: str
    # заголовок топика, если у клиента нет username
    generic_user_title: str
