import os
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv(override=True)


class Settings:
    def __init__(self) -> None:
        self.DATA_ROOT = os.getenv("ITEMSCAN_DATA_ROOT", os.getenv("DATA_ROOT", "./data"))
        self.LOG_LEVEL = os.getenv("ITEMSCAN_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")).upper()

        self.MAX_IMAGE_MB = int(os.getenv("ITEMSCAN_MAX_IMAGE_MB", os.getenv("MAX_IMAGE_MB", "20")))
        self.ALLOWED_MIME = (
            os.getenv(
                "ITEMSCAN_ALLOWED_MIME",
                os.getenv("ALLOWED_MIME", "image/jpeg,image/png,image/webp,image/heic"),
            )
            .strip()
            .split(",")
        )

        # Soft quotas per provider (calls before analysis is refused)
        self.GOOGLE_VISION_LIMIT = int(os.getenv("ITEMSCAN_GOOGLE_VISION_LIMIT", "1000"))
        self.AMAZON_REKOGNITION_LIMIT = int(os.getenv("ITEMSCAN_AMAZON_REKOGNITION_LIMIT", "1000"))

        # Google Cloud Vision
        self.GOOGLE_VISION_API_KEY = os.getenv("ITEMSCAN_GOOGLE_VISION_API_KEY", os.getenv("GOOGLE_VISION_API_KEY"))
        self.GOOGLE_APPLICATION_CREDENTIALS = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        self.GOOGLE_VISION_MAX_RESULTS = int(os.getenv("ITEMSCAN_GOOGLE_VISION_MAX_RESULTS", "10"))
        self.GOOGLE_VISION_MIN_SCORE = float(os.getenv("ITEMSCAN_GOOGLE_VISION_MIN_SCORE", "0.6"))

        # Amazon Rekognition
        self.REKOGNITION_REGION = os.getenv("ITEMSCAN_REKOGNITION_REGION", os.getenv("AWS_REGION", "us-east-1"))
        self.REKOGNITION_MAX_LABELS = int(os.getenv("ITEMSCAN_REKOGNITION_MAX_LABELS", "10"))
        self.REKOGNITION_MIN_CONFIDENCE = float(os.getenv("ITEMSCAN_REKOGNITION_MIN_CONFIDENCE", "60"))
        self.REKOGNITION_MAX_IMAGE_MB = int(os.getenv("ITEMSCAN_REKOGNITION_MAX_IMAGE_MB", "5"))

        # Summarization (OpenAI)
        self.OPENAI_API_KEY = os.getenv("ITEMSCAN_OPENAI_API_KEY", os.getenv("OPENAI_API_KEY"))
        # On by default only when a key is configured
        self.SUMMARIZER_ENABLED = os.getenv(
            "ITEMSCAN_SUMMARIZER_ENABLED", "true" if self.OPENAI_API_KEY else "false"
        ).lower() == "true"
        self.OPENAI_MODEL = os.getenv("ITEMSCAN_OPENAI_MODEL", "gpt-4o-mini")

        # Database
        self.DATABASE_URL = os.getenv("DATABASE_URL")  # Full connection string
        self.POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
        self.POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "")
        self.POSTGRES_HOST = os.getenv("POSTGRES_HOST", "localhost")
        self.POSTGRES_PORT = int(os.getenv("POSTGRES_PORT", "5432"))
        self.POSTGRES_DB = os.getenv("POSTGRES_DB", "itemscan")
        self.DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"
        self.USE_DATABASE = os.getenv("USE_DATABASE", "false").lower() == "true"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
