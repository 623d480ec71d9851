from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, SecretStr
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).resolve().parent.parent

DATABASE_PATH = BASE_DIR / "databases" / "chat_history.db"


class Settings(BaseSettings):
    PROJECT_NAME: str = "Chat History Store"
    DATABASE_TYPE: str = Field(default="sqlite") #Change this to postgres if you want to use postgres database
    SQLITE_PATH: Path = DATABASE_PATH
    POSTGRES_URL: Optional[SecretStr] = None
    DATABASE_ECHO: bool = False
    SCHEMA_VARIANT: str = "conversation"
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[Path] = None

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def DATABASE_URL(self) -> str:
        if self.DATABASE_TYPE == "sqlite":
            self.SQLITE_PATH.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite+aiosqlite:///{self.SQLITE_PATH.as_posix()}"
        if self.POSTGRES_URL is None:
            raise ValueError(f"POSTGRES_URL is required when DATABASE_TYPE is {self.DATABASE_TYPE!r}")
        return self.POSTGRES_URL.get_secret_value()

settings = Settings()
