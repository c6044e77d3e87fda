"""Core configuration with Pydantic v2 Settings."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    log_level: str = "INFO"
    enable_metrics: bool = True

    # Batch validation: worker threads for validate_batch (min 1)
    COMPLIANCE_BATCH_MAX_WORKERS: int = 4

    # XAdES: compute the KeyInfo reference digest (False = empty DigestValue)
    COMPLIANCE_SIGN_KEYINFO_DIGEST: bool = True

    # Default signing material (PEM file paths) for formats that mandate XAdES.
    # Key material itself is never configured inline.
    COMPLIANCE_SIGNATURE_CERT_PATH: Optional[str] = None
    COMPLIANCE_SIGNATURE_KEY_PATH: Optional[str] = None
    COMPLIANCE_SIGNATURE_KEY_PASSWORD: Optional[str] = None


# Global settings instance
settings = Settings()
