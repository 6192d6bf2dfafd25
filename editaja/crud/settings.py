"""
Settings CRUD Operations
Reads and writes the `settings/{name}` documents, with a short read cache.
"""

from typing import Any, Dict, Optional

import cachetools
from pydantic import ValidationError as PydanticValidationError

from editaja.config import get_settings
from editaja.crud.base import BaseCRUD, validate_model
from editaja.models.settings import (
    SETTINGS_MODELS,
    AISettings,
    BetaTesterSettings,
    GeneralSettings,
    MidtransSettings,
    SettingsModel,
    SocialMediaSettings,
    ThemeSettings,
    TokenSettings,
)
from editaja.utils.exceptions import NotFoundError
from editaja.utils.logger import get_logger
from editaja.utils.timeutils import utcnow

logger = get_logger(__name__)

SETTINGS_CACHE_TTL = 30

# Fields returned masked to admins; a masked or blank value on save keeps the stored one
SECRET_FIELDS = {"ai": ("apiKey",), "midtrans": ("serverKey",)}

# Computed on read, never stored
READ_ONLY_FIELDS = ("configured",)

# Shared across CRUD instances; keyed by (id(db), name)
_cache: cachetools.TTLCache = cachetools.TTLCache(maxsize=64, ttl=SETTINGS_CACHE_TTL)


def clear_settings_cache() -> None:
    _cache.clear()


def mask_secret(value: str) -> str:
    if not value:
        return ""
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"


class SettingsCRUD(BaseCRUD):
    """CRUD operations for settings documents."""

    @property
    def collection_name(self) -> str:
        return "settings"

    def get_raw(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the stored document for a settings group, cached briefly."""
        key = (id(self.db), name)
        if key in _cache:
            return _cache[key]
        doc = self.document(name).get()
        data = doc.to_dict() if doc.exists else None
        _cache[key] = data
        return data

    def _load(self, name: str) -> SettingsModel:
        model = SETTINGS_MODELS[name]
        try:
            return model.from_dict(self.get_raw(name))
        except PydanticValidationError as e:
            # Bad data written by hand in the console; fall back to defaults
            logger.warning(f"Invalid settings document '{name}': {e}")
            return model()

    def get_ai(self) -> AISettings:
        return self._load("ai")

    def get_theme(self) -> ThemeSettings:
        return self._load("theme")

    def get_tokens(self) -> TokenSettings:
        return self._load("tokens")

    def get_beta_tester(self) -> BetaTesterSettings:
        return self._load("betaTester")

    def get_general(self) -> GeneralSettings:
        return self._load("general")

    def get_social_media(self) -> SocialMediaSettings:
        return self._load("socialMedia")

    def get_midtrans(self) -> Optional[MidtransSettings]:
        """Midtrans keys, from the environment when set, else Firestore."""
        env = get_settings()
        if env.midtrans_server_key and env.midtrans_client_key:
            return MidtransSettings(
                server_key=env.midtrans_server_key,
                client_key=env.midtrans_client_key,
                is_production=env.midtrans_is_production,
            )
        data = self.get_raw("midtrans")
        if not data:
            return None
        try:
            return MidtransSettings.from_dict(data)
        except PydanticValidationError:
            logger.warning("Midtrans settings are incomplete")
            return None

    def get_ai_api_key(self) -> str:
        """AI key, environment first, then settings/ai."""
        return get_settings().ai_api_key or self.get_ai().api_key

    def save(self, name: str, values: Dict[str, Any]) -> SettingsModel:
        """
        Validate and merge new values into a settings group.

        Raises:
            NotFoundError: unknown settings group
            ValidationError: values fail validation
        """
        model = SETTINGS_MODELS.get(name)
        if model is None:
            raise NotFoundError(f"Unknown settings group: {name}")

        current = self.get_raw(name) or {}
        values = self._writable_values(name, values, current)
        validated = validate_model(model, {**current, **values})

        data = validated.to_dict()
        data["updatedAt"] = utcnow()
        self.document(name).set(data, merge=True)
        _cache.pop((id(self.db), name), None)
        logger.info(f"Settings '{name}' updated")
        return validated

    def _effective_secret(self, name: str) -> str:
        if name == "ai":
            return self.get_ai_api_key()
        midtrans = self.get_midtrans()
        return midtrans.server_key if midtrans else ""

    def _writable_values(self, name: str, values: Dict[str, Any], current: Dict[str, Any]) -> Dict[str, Any]:
        """Drop read-only fields and secrets echoed back masked or left blank."""
        values = {k: v for k, v in values.items() if k not in READ_ONLY_FIELDS}
        for field in SECRET_FIELDS.get(name, ()):
            if field not in values:
                continue
            incoming = str(values[field] or "").strip()
            masks = {mask_secret(s) for s in (current.get(field), self._effective_secret(name)) if s}
            if not incoming or incoming in masks:
                values.pop(field)
        return values

    def get_all_for_admin(self) -> Dict[str, Dict[str, Any]]:
        """Every settings group with secrets masked."""
        result: Dict[str, Dict[str, Any]] = {}
        for name in SETTINGS_MODELS:
            if name == "midtrans":
                midtrans = self.get_midtrans()
                result[name] = {
                    "configured": midtrans is not None,
                    "serverKey": mask_secret(midtrans.server_key) if midtrans else "",
                    "clientKey": midtrans.client_key if midtrans else "",
                    "isProduction": midtrans.is_production if midtrans else False,
                }
            elif name == "ai":
                key = self.get_ai_api_key()
                result[name] = {"configured": bool(key), "apiKey": mask_secret(key)}
            else:
                result[name] = self._load(name).to_dict()
        return result
