# src/shared/settings.py
import os
from pathlib import Path
from urllib.parse import quote

BASE_DIR = Path(os.getenv("APP_BASE_DIR", "."))
LOGS_DIR = Path(os.getenv("LOGS_DIR", str(BASE_DIR / "logs")))

# JSON-конфиг бота (token, chat_id, first_message, expiry_day)
CONFIG_FILE = Path(os.getenv("CONFIG_FILE", str(BASE_DIR / "config.json")))

# === PostgreSQL ===
DB_USER = os.getenv("DB_USER", "relay_user")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = int(os.getenv("DB_PORT", "5432"))
DB_NAME = os.getenv("DB_NAME", "support_relay")

# Автоматическое URL-кодирование пароля для безопасности
_db_password_encoded = quote(DB_PASSWORD, safe="")

DATABASE_URL = f"postgresql://{DB_USER}:{_db_password_encoded}@{DB_HOST}:{DB_PORT}/{DB_NAME}"

# === ЛОГИРОВАНИЕ ===
LOG_LEVEL = os.getenv("LOG_LEVEL", os.getenv("LOGLEVEL", "INFO"))
LOG_FILE = Path(os.getenv("LOG_FILE", str(LOGS_DIR / "relay_bot.log")))

# === ОЧИСТКА ТИКЕТОВ ===
SWEEP_INITIAL_DELAY_SECONDS = int(os.getenv("SWEEP_INITIAL_DELAY_SECONDS", "60"))
SWEEP_INTERVAL_HOURS = int(os.getenv("SWEEP_INTERVAL_HOURS", "6"))
