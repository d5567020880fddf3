# src/shared/config.py
import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

logger = logging.getLogger(__name__)


class ConfigFormatError(ValueError):
    """Файл конфигурации прочитан, но содержимое не подходит."""


@dataclass
class BotConfig:
    token: str = "TOKEN_TG_BOT"
    chat_id: int = 1
    first_message: str = "Приветствие"
    expiry_day: int = 15
    lang_code: str = "ru"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BotConfig":
        """
        Стартуем с дефолтов и накладываем значения из файла.
        Неизвестные ключи игнорируются, неверные типы -> ConfigFormatError.
        """
        if not isinstance(data, dict):
            raise ConfigFormatError(f"config root must be an object, got {type(data).__name__}")

        cfg = cls()
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            expected = type(getattr(cfg, f.name))
            # bool — подкласс int, в chat_id/expiry_day его не пускаем
            if isinstance(value, bool) or not isinstance(value, expected):
                raise ConfigFormatError(
                    f"field {f.name!r} must be {expected.__name__}, got {type(value).__name__}"
                )
            setattr(cfg, f.name, value)
        return cfg

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def save_config(path: Union[str, Path], cfg: BotConfig) -> None:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(cfg.to_dict(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)


def load_config(path: Union[str, Path]) -> BotConfig:
    """
    Загружает конфиг бота из JSON.
    Если файла нет или он битый — пишем дефолтный и работаем на дефолтах.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as e:
        logger.warning("Cannot open config %s, using defaults: %s", path, e)
        cfg = BotConfig()
        save_config(path, cfg)
        return cfg

    try:
        cfg = BotConfig.from_dict(json.loads(raw.decode("utf-8")))
    except (UnicodeDecodeError, json.JSONDecodeError, ConfigFormatError) as e:
        logger.warning("Cannot parse config %s, using defaults: %s", path, e)
        cfg = BotConfig()
        save_config(path, cfg)
        return cfg

    logger.info("Config loaded from %s (chat_id=%s, expiry_day=%s)", path, cfg.chat_id, cfg.expiry_day)
    return cfg
