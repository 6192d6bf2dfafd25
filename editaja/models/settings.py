"""
Settings Models
Admin-editable runtime settings stored as documents in the `settings` collection.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SettingsModel(BaseModel):
    """Base for a `settings/{name}` document."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to Firestore field names."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SettingsModel":
        """Build from a Firestore document, falling back to defaults."""
        return cls.model_validate(data or {})


class AISettings(SettingsModel):
    api_key: str = Field(default="", alias="apiKey", description="AI image generation API key")


class ThemeSettings(SettingsModel):
    primary: str = Field(default="#0d0df2", description="Primary brand color")
    background_light: str = Field(default="#f5f5f8", alias="backgroundLight")
    background_dark: str = Field(default="#111118", alias="backgroundDark")


class TokenSettings(SettingsModel):
    initial_tokens: int = Field(default=100, ge=0, alias="initialTokens", description="Diamonds granted on sign-up and restored by the daily reset")
    token_cost_per_generate: int = Field(default=10, ge=0, alias="tokenCostPerGenerate")
    max_anonymous_generations: int = Field(default=1, ge=0, alias="maxAnonymousGenerations")


class MidtransSettings(SettingsModel):
    server_key: str = Field(alias="serverKey", description="Midtrans server key")
    client_key: str = Field(alias="clientKey", description="Midtrans client key")
    is_production: bool = Field(default=False, alias="isProduction")

    @field_validator("server_key", "client_key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Both Midtrans keys are required."""
        v = (v or "").strip()
        if not v:
            raise ValueError("Server Key and Client Key are required")
        return v


class BetaTesterSettings(SettingsModel):
    free_tokens: int = Field(default=1000, ge=0, alias="freeTokens")
    registration_enabled: bool = Field(default=True, alias="registrationEnabled")
    max_beta_testers: Optional[int] = Field(default=None, ge=0, alias="maxBetaTesters")


class GeneralSettings(SettingsModel):
    website_name: str = Field(default="edit Aja", alias="websiteName")
    logo_path: str = Field(default="", alias="logoPath")
    favicon_path: str = Field(default="", alias="faviconPath")
    watermark_enabled: bool = Field(default=True, alias="watermarkEnabled")

    @field_validator("website_name")
    @classmethod
    def validate_website_name(cls, v: str) -> str:
        """Website name must not be empty."""
        v = (v or "").strip()
        if not v:
            raise ValueError("Website name is required")
        return v


class SocialMediaSettings(SettingsModel):
    facebook: bool = True
    twitter: bool = True
    whatsapp: bool = True
    telegram: bool = True
    linkedin: bool = True
    pinterest: bool = True


SETTINGS_MODELS = {
    "ai": AISettings,
    "theme": ThemeSettings,
    "tokens": TokenSettings,
    "midtrans": MidtransSettings,
    "betaTester": BetaTesterSettings,
    "general": GeneralSettings,
    "socialMedia": SocialMediaSettings,
}
