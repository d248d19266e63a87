from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # --- DB 設定 ---
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_NAME: str = "Timetable"
    # full URL override, e.g. "sqlite://" for local runs
    DATABASE_URL: Optional[str] = None

    # --- 課表來源 ---
    TIMETABLE_SITES_LINK: str = ""
    TIMETABLE_SITES_DOWNLOAD_BUTTON_ID: str = ""
    TIMETABLE_SITES_HOST: str = "https://sites.google.com"
    TIMETABLE_FILE_PATH: str = "./sheet.xlsx"

    # --- HTTP ---
    TIMETABLE_HTTP_TIMEOUT: float = 30.0
    TIMETABLE_HTTP_RETRIES: int = 3
    TIMETABLE_DOWNLOAD_CHUNK_SIZE: int = 64 * 1024

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # 設定檔配置
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

settings = Settings()
