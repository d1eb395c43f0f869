from dotenv import load_dotenv
load_dotenv()

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    """Конфигурация бота пополнения стриминговых аккаунтов DAO.

    Настройки подгружаются из файла `.env` и переменных окружения.

    Атрибуты:
        TELEGRAM_BOT_TOKEN (str): Токен Telegram-бота.
        DB_URL (str): URL базы с каталогом аккаунтов (например, sqlite+aiosqlite:///data/realms.db).
        SOLANA_RPC_URL (str): Адрес RPC-ноды Solana; по нему же определяется кластер.
        RPC_TIMEOUT (float): Таймаут запросов к RPC в секундах.
        GOVERNANCE (str | None): Governance по умолчанию для новых предложений.
    """
    TELEGRAM_BOT_TOKEN: str = Field(..., alias="TELEGRAM_BOT_TOKEN")
    DB_URL: str = Field(..., alias="DB_URL")
    SOLANA_RPC_URL: str = Field(default="https://api.mainnet-beta.solana.com", alias="SOLANA_RPC_URL")
    RPC_TIMEOUT: float = Field(default=10.0, alias="RPC_TIMEOUT")
    GOVERNANCE: str | None = Field(default=None, alias="GOVERNANCE")
    TELEGRAM_BOT_ALERT: str | None = Field(default=None, alias="TELEGRAM_BOT_ALERT")
    TELEGRAM_ALERT_CHAT_ID: str | None = Field(default=None, alias="TELEGRAM_ALERT_CHAT_ID")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()
