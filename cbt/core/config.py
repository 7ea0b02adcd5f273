from pydantic_settings import BaseSettings
from typing import Optional, List

from cbt.core.constants import ReviewPolicyEnum

class Settings(BaseSettings):
    PROJECT_NAME: str = "CBT Exam Engine"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    TESTING: bool = False

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Durable autosave store
    REDIS_URL: Optional[str] = None
    CACHE_TTL: int = 300
    AUTOSAVE_TTL: int = 60 * 60 * 24  # 1 day
    AUTOSAVE_KEY_PREFIX: str = "autosave"

    # AI grading provider
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.0-flash"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    AI_GRADING_TIMEOUT: float = 20.0

    # Grading
    REVIEW_POLICY: ReviewPolicyEnum = ReviewPolicyEnum.ESSAY_AND_SHORT_ANSWER

    # Monitoring
    FOCUS_LOST_FLAG_THRESHOLD: int = 3
    CONNECTION_LOST_FLAG_THRESHOLD: int = 2

    class Config:
        env_file = ".env"

settings = Settings()
