from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./call_records.db"

    # Telnyx call control
    TELNYX_API_KEY: Optional[str] = None
    TELNYX_API_BASE: str = "https://api.telnyx.com/v2"
    TELNYX_PHONE_NUMBER: Optional[str] = None
    TELNYX_CONNECTION_ID: Optional[str] = None
    TELNYX_TIMEOUT_SECONDS: float = 10.0
    WEBHOOK_BASE_URL: Optional[str] = None  # Public base URL (ngrok or production)
    HUMAN_PHONE_NUMBER: Optional[str] = None

    # Optional recorded prompts (speech is used when these are off/empty)
    USE_RECORDED_PROMPTS: bool = False
    GREETING_AUDIO_URL: Optional[str] = None
    MENU_AUDIO_URL: Optional[str] = None
    HUMAN_GREETING_AUDIO_URL: Optional[str] = None
    TTS_VOICE: str = "female"
    TTS_LANGUAGE: str = "en-US"

    # Call flow timings (seconds)
    IVR_MENU_DELAY_SECONDS: float = 0.6
    GREETING_SETTLE_SECONDS: float = 0.6
    INVALID_SELECTION_DELAY_SECONDS: float = 0.7
    HUMAN_DIAL_DELAY_SECONDS: float = 0.2
    HUMAN_GREETING_DELAY_SECONDS: float = 0.4
    HUMAN_ANSWER_TIMEOUT_SECONDS: float = 35.0
    HUMAN_RING_TIMEOUT_SECONDS: int = 30
    MAPPING_WAIT_SECONDS: float = 5.0
    MAPPING_POLL_SECONDS: float = 0.15

    # Cloudinary (permanent recording mirror)
    CLOUDINARY_CLOUD_NAME: Optional[str] = None
    CLOUDINARY_API_KEY: Optional[str] = None
    CLOUDINARY_API_SECRET: Optional[str] = None
    RECORDINGS_FOLDER: str = "recordings"

    # AssemblyAI (optional transcripts)
    ASSEMBLYAI_API_KEY: Optional[str] = None
    ASSEMBLYAI_API_BASE: str = "https://api.assemblyai.com/v2"
    ASSEMBLYAI_POLL_SECONDS: float = 5.0
    ASSEMBLYAI_MAX_WAIT_SECONDS: float = 1800.0

    # Zapier lead automation
    ZAPIER_WEBHOOK_URL: Optional[str] = None
    ZAPIER_SEND_DELAY_SECONDS: float = 5.0
    ZAPIER_RETRY_DELAY_SECONDS: float = 30.0  # Non-2xx response
    ZAPIER_ERROR_RETRY_DELAY_SECONDS: float = 60.0  # Network failure
    ZAPIER_MAX_ATTEMPTS: int = 10
    ZAPIER_INCLUDE_HUMAN_TRANSFER: bool = True
    ZAPIER_TIMEOUT_SECONDS: float = 15.0

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

    @property
    def webhook_url(self) -> Optional[str]:
        """Full Telnyx callback URL for call events"""
        if not self.WEBHOOK_BASE_URL:
            return None
        return f"{self.WEBHOOK_BASE_URL.rstrip('/')}/webhooks/calls"

    @property
    def cloudinary_configured(self) -> bool:
        return bool(self.CLOUDINARY_CLOUD_NAME and self.CLOUDINARY_API_KEY and self.CLOUDINARY_API_SECRET)

    @property
    def zapier_configured(self) -> bool:
        return bool(self.ZAPIER_WEBHOOK_URL)


settings = Settings()
