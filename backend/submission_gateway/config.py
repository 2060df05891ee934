"""
Application configuration
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "Battle Result Submission Gateway"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    CORS_ALLOW_ORIGINS: List[str] = ["*"]

    # GitHub
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_OAUTH_URL: str = "https://github.com"
    GITHUB_CLIENT_ID: Optional[str] = None
    GITHUB_DEVICE_SCOPE: str = "repo"
    USER_AGENT: str = "SparkingZero-Uploader"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    # Target repository
    REPO_OWNER: str = "DragonBallZLeague"
    REPO_NAME: str = "SparkingZero"
    BASE_BRANCH: str = "dev-branch"
    DATA_ROOT: str = "apps/analyzer/BR_Data"
    SUBMISSION_LABEL: str = "data-submission"

    # Submission limits
    MAX_SUBMIT_FILES: int = 10
    MAX_VALIDATE_FILES: int = 20
    MAX_NAME_LENGTH: int = 80
    MAX_COMMENTS_LENGTH: int = 500
    MAX_FILENAME_LENGTH: int = 255
    MAX_FILE_CONTENT_CHARS: int = 8_000_000
    MAX_FILE_SIZE_KB: int = 10_000

    # Review
    ENRICHMENT_FILE_LIMIT: int = 5
    DRAFT_POLL_INTERVAL_SECONDS: float = 1.0
    DRAFT_POLL_ATTEMPTS: int = 10

    # Device flow
    DEVICE_FLOW_SLOW_DOWN_SECONDS: int = 5
    DEVICE_FLOW_MAX_ATTEMPTS: int = 180

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
