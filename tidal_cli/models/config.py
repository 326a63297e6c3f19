"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

# Stream qualities accepted by the urlpostpaywall endpoint
AUDIO_QUALITIES = {
    "LOW": {"name": "AAC 96kbps", "short": "96k"},
    "HIGH": {"name": "AAC 320kbps", "short": "320k"},
    "LOSSLESS": {"name": "CD Lossless (16/44.1)", "short": "16/44.1"},
    "HI_RES": {"name": "Hi-Res (up to 24/192)", "short": "24/192"},
}

DEFAULT_AUTH_URL = "https://auth.tidal.com/v1/oauth2"
DEFAULT_API_URL = "https://api.tidal.com/v1"
DEFAULT_SCOPE = "r_usr w_usr w_sub"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 10; K) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/134.0.0.0 Mobile Safari/537.3"
)


def get_quality_info(quality: str) -> dict[str, str]:
    """Gets display information for a given stream quality."""
    return AUDIO_QUALITIES.get(quality, {"name": "Unknown", "short": "Unknown"})


class TidalConfig(BaseModel):
    """A validated configuration model for the application."""

    # Authentication & API
    client_id: str = ""
    client_secret: str = ""
    credential_path: Path = Path("data/tidal_token.json")
    auth_url: str = DEFAULT_AUTH_URL
    api_url: str = DEFAULT_API_URL
    scope: str = DEFAULT_SCOPE
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 30.0

    # Playback & cache
    audio_quality: str = "HIGH"
    cache_dir: Path = Path("data/cache")
    cache_capacity_mb: int = 1024

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @property
    def cache_capacity_bytes(self) -> int:
        return self.cache_capacity_mb * 1024 * 1024

    @field_validator("audio_quality")
    @classmethod
    def validate_quality(cls, v: str) -> str:
        """Ensures the quality is one the stream endpoint understands."""
        v = v.upper()
        if v not in AUDIO_QUALITIES:
            raise ValueError(
                f"Audio quality must be one of {', '.join(AUDIO_QUALITIES)}."
            )
        return v

    @field_validator("cache_capacity_mb")
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Cache capacity must be at least 1 MB.")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Request timeout must be positive.")
        return v

    @field_validator("auth_url", "api_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Strips trailing slashes so endpoints can be joined with '/'."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got: {v}")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_client_credentials(self) -> "TidalConfig":
        """Validates that the OAuth client is configured."""
        if not self.client_id or not self.client_secret:
            raise ValueError(
                "Client credentials are incomplete. 'client_id' and "
                "'client_secret' are required."
            )
        return self

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
