import asyncio
from aiogram import Bot, Dispatcher

from app.db import init_db
from app.config import settings
from app.routers.mean_fund import r as mean_fund_router
from app.utils.alerts import setup_alert_logging


async def main() -> None:
    """Точка входа бота.

    Последовательно выполняет:
      1. Настройку логирования и алертов (`setup_alert_logging`).
      2. Инициализацию базы с каталогом аккаунтов (`init_db`).
      3. Запуск Telegram-бота и подключение роутера формы пополнения.
      4. Запуск цикла обработки сообщений (`start_polling`).
    """
    setup_alert_logging()
    await init_db()
    bot = Bot(token=settings.TELEGRAM_BOT_TOKEN)
    dp = Dispatcher()
    dp.include_router(router=mean_fund_router)
    await dp.start_polling(bot)

if __name__ == "__main__":
    asyncio.run(main())
