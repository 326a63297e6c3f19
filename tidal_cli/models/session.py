"""
Pydantic models for the OAuth credential and the session derived from it.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator


class Credential(BaseModel):
    """The bearer credential persisted between runs."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"

    class Config:
        frozen = True

    @property
    def authorization_header(self) -> str:
        return f"{self.token_type} {self.access_token}"


class SessionIdentity(BaseModel):
    """Session and account metadata returned by the sessions endpoint."""

    session_id: str = Field(validation_alias=AliasChoices("sessionId", "session_id"))
    country_code: str = Field(
        validation_alias=AliasChoices("countryCode", "country_code")
    )
    user_id: str = Field(validation_alias=AliasChoices("userId", "user_id"))

    class Config:
        frozen = True

    @field_validator("session_id", "country_code", "user_id", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> str:
        """User ids arrive as integers; keep every field textual."""
        return str(v)

    @classmethod
    def from_response(cls, payload: dict[str, Any]) -> "SessionIdentity":
        """Builds the identity from a sessions endpoint payload."""
        return cls.model_validate(payload)


class DeviceAuthorization(BaseModel):
    """The device code grant returned by the device authorization endpoint."""

    device_code: str = Field(
        validation_alias=AliasChoices("deviceCode", "device_code")
    )
    user_code: str = Field(
        "", validation_alias=AliasChoices("userCode", "user_code")
    )
    verification_uri: str = Field(
        "", validation_alias=AliasChoices("verificationUri", "verification_uri")
    )
    verification_uri_complete: str = Field(
        validation_alias=AliasChoices(
            "verificationUriComplete", "verification_uri_complete"
        )
    )
    expires_in: int = Field(
        ge=0, validation_alias=AliasChoices("expiresIn", "expires_in")
    )
    interval: int = Field(1, ge=0)

    @property
    def verification_url(self) -> str:
        """The approval link, with a scheme added when upstream omits it."""
        uri = self.verification_uri_complete
        if uri.startswith(("http://", "https://")):
            return uri
        return f"https://{uri}"
