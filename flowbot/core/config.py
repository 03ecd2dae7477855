from typing import Optional, Set
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    BOT_TOKEN: str = Field(...)
    FLOW_SERVICE_URL: str = Field(...)
    TEMPLATE_SERVICE_URL: str = Field(...)
    FILE_SERVICE_URL: str = Field(...)
    DEFAULT_FLOW_SLUG: Optional[str] = None
    # Через запятую: "123,456"
    ADMIN_IDS: str = ""
    SESSION_TIMEOUT_MINUTES: int = Field(default=30, ge=1)
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/bot.log"

    @property
    def admin_ids(self) -> Set[int]:
        return {int(part) for part in self.ADMIN_IDS.split(",") if part.strip()}


settings = Settings()

BOT_TOKEN = settings.BOT_TOKEN
FLOW_SERVICE_URL = settings.FLOW_SERVICE_URL
TEMPLATE_SERVICE_URL = settings.TEMPLATE_SERVICE_URL
FILE_SERVICE_URL = settings.FILE_SERVICE_URL
DEFAULT_FLOW_SLUG = settings.DEFAULT_FLOW_SLUG
ADMIN_IDS = settings.admin_ids
SESSION_TIMEOUT_MINUTES = settings.SESSION_TIMEOUT_MINUTES
LOG_LEVEL = settings.LOG_LEVEL
LOG_FILE = settings.LOG_FILE
