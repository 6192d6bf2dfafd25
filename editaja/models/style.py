"""
Style Model
Admin-curated prompt templates applied to user photos.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from editaja.utils.timeutils import utcnow


class StyleStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class StyleModel(BaseModel):
    """Style document stored in `styles`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1, description="Display name / style code")
    prompt: str = Field(min_length=1, description="Prompt sent to the AI API")
    image_url: str = Field(default="", alias="imageUrl", description="Preview image")
    status: StyleStatus = StyleStatus.ACTIVE
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=utcnow, alias="updatedAt")

    @field_validator("name", "prompt", "category")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: List[str]) -> List[str]:
        """Drop empty tags."""
        return [t.strip() for t in v if isinstance(t, str) and t.strip()]

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StyleModel":
        return cls.model_validate(data)


class StyleImportItem(BaseModel):
    """One entry of a bulk style import file."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    prompt: str = Field(min_length=1)
    image_url: str = Field(default="", alias="imageUrl")
    status: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[Any]] = None
