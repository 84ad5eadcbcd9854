import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

# Загрузка переменных окружения
load_dotenv()


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_secret: str = ""
    admin_username: Optional[str] = None
    admin_password: Optional[str] = None
    jwt_expires_minutes: int = 120

    cloudinary_cloud_name: str = ""
    cloudinary_api_key: str = ""
    cloudinary_api_secret: str = ""

    upload_dir: str = "uploads"
    media_folder: str = "pashto_dict"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise ValueError("DATABASE_URL not set in environment variables")

        origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

        return cls(
            database_url=database_url,
            jwt_secret=os.getenv("JWT_SECRET", ""),
            admin_username=os.getenv("ADMIN_USERNAME"),
            admin_password=os.getenv("ADMIN_PASSWORD"),
            jwt_expires_minutes=int(os.getenv("JWT_EXPIRES_MINUTES", "120")),
            cloudinary_cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", ""),
            cloudinary_api_key=os.getenv("CLOUDINARY_API_KEY", ""),
            cloudinary_api_secret=os.getenv("CLOUDINARY_API_SECRET", ""),
            upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
            media_folder=os.getenv("MEDIA_FOLDER", "pashto_dict"),
            cors_origins=origins or ["*"],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


def configure_logging(level_name: str = "INFO") -> None:
    """Настройка корневого логгера"""
    level = getattr(logging, level_name.upper(), logging.INFO)
    root_logger = logging.getLogger()

    if root_logger.handlers:
        root_logger.setLevel(level)
        return

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
