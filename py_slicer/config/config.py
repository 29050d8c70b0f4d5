from pathlib import Path
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

import os

# Load .env for local/dev environments only for values missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    for k, v in file_env.items():
        if k not in os.environ and v is not None:
            os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from SLICER_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="SLICER_", extra="ignore")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    allowed_origins: str = Field(default="*", description="Comma separated CORS allowed origins")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (console or json)")

    # Slicing Configuration
    default_alpha_threshold: int = Field(default=8, ge=0, le=255, description="Default alpha threshold")
    default_pixels_per_unit: float = Field(default=100.0, gt=0, description="Default pixels per world unit")
    min_pieces: int = Field(default=5, ge=1, description="Minimum pieces per slice")
    max_pieces: int = Field(default=300, ge=1, description="Maximum pieces per slice")
    max_source_pixels: int = Field(default=4096 * 4096, description="Largest accepted source image (w*h)")

    @property
    def cors_origins(self) -> list:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


# Instantiate singleton settings object
settings = Settings()
