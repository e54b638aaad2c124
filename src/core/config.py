"""
Core configuration for the FileShare uploader.
Manages environment variables for the chunked transfer client and receiver.
"""
import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Upload endpoint
    upload_base_url: str = os.getenv("UPLOAD_BASE_URL", "http://localhost:8080")
    upload_path: str = os.getenv("UPLOAD_PATH", "/upload")
    destination_dir: str = os.getenv("DESTINATION_DIR", "/")

    # Chunked transfer
    chunk_size: int = int(os.getenv("CHUNK_SIZE", str(4 << 20)))
    parallel_chunks: int = int(os.getenv("PARALLEL_CHUNKS", "4"))
    speed_sample_interval: float = float(os.getenv("SPEED_SAMPLE_INTERVAL", "0.5"))

    # Receiver
    upload_root: str = os.getenv("UPLOAD_ROOT", os.getcwd())

    # API Configuration
    api_title: str = os.getenv("API_TITLE", "FileShare Upload API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
