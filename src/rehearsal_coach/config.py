"""Runtime configuration for Rehearsal Coach."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven runtime settings."""

    model_config = SettingsConfigDict(env_prefix="REHEARSAL_COACH_", env_file=".env", extra="ignore")

    app_name: str = "rehearsal-coach"
    log_level: str = "INFO"
    records_path: str = Field(
        default="~/.rehearsal_coach/stories.json",
        description="JSON file holding the story vault records.",
    )
    speech_backend: str = Field(
        default="speechrecognition",
        description="Capture backend: speechrecognition or scripted.",
    )
    language: str = "en-US"
    phrase_time_limit: float = Field(default=10.0, gt=0)
    auto_restart: bool = Field(
        default=True,
        description="Restart capture when the recognizer ends on its own during a session.",
    )
    speak_feedback: bool = False


settings = Settings()
