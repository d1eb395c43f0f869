"""
Алерты об ошибках бота в Telegram.

`TelegramAlertHandler` перехватывает записи логов уровня WARNING и выше
(например, `[RPC] ... unavailable` при обновлении минтов) и пересылает их
в служебные чаты отдельным ботом. Подключается вызовом `setup_alert_logging()`
в `app/main.py`.

Переменные окружения:
- TELEGRAM_BOT_ALERT: токен бота для алертов. Без него обработчик ничего не шлёт.
- TELEGRAM_ALERT_CHAT_ID: id чатов через запятую, например "123456789,-1001234567890".
"""
import asyncio
import logging
from typing import List, Optional

from aiogram import Bot

from app.config import settings

ALERT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def parse_chat_ids(raw: Optional[str]) -> List[int]:
    if not raw:
        return []
    ids: List[int] = []
    for part in raw.split(","):
        part = part.strip()
        if part.lstrip("-").isdigit():
            ids.append(int(part))
    return ids


class TelegramAlertHandler(logging.Handler):
    """Пересылает записи WARNING+ в чаты из `TELEGRAM_ALERT_CHAT_ID`."""

    def __init__(self, level: int = logging.WARNING, bot: Optional[Bot] = None) -> None:
        super().__init__(level=level)
        self._chat_ids = parse_chat_ids(settings.TELEGRAM_ALERT_CHAT_ID)
        self._bot = bot
        if self._bot is None and settings.TELEGRAM_BOT_ALERT:
            self._bot = Bot(token=settings.TELEGRAM_BOT_ALERT)

    def emit(self, record: logging.LogRecord) -> None:
        if self._bot is None or not self._chat_ids:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # вне event loop (скрипты, тесты) отправлять некуда
            return
        loop.create_task(self._send(self.format(record)))

    async def _send(self, text: str) -> None:
        for chat_id in self._chat_ids:
            try:
                await self._bot.send_message(chat_id=chat_id, text=f"🚨 Realms fund bot:\n{text}")
            except Exception:
                continue


def setup_alert_logging() -> None:
    """Подключает `TelegramAlertHandler` к корневому логгеру.

    Повторный вызов не добавляет второй обработчик.
    """
    logging.basicConfig(level=logging.INFO, format=ALERT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    root = logging.getLogger()
    if any(isinstance(h, TelegramAlertHandler) for h in root.handlers):
        return
    handler = TelegramAlertHandler(level=logging.WARNING)
    handler.setFormatter(logging.Formatter(fmt=ALERT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
