"""
Generation Model
A completed AI style generation, shown in the user's history and the admin gallery.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from editaja.utils.timeutils import utcnow

ANONYMOUS_USER_ID = "anonymous"


class GenerationLocation(BaseModel):
    country: str = "Unknown"
    city: str = "Unknown"
    ip: str = "Unknown"


class GenerationModel(BaseModel):
    """Generation document stored in `generations`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(default=ANONYMOUS_USER_ID, alias="userId")
    style_id: str = Field(alias="styleId")
    style_name: str = Field(default="", alias="styleName")
    original_image_url: str = Field(default="", alias="originalImageUrl")
    generated_image_urls: List[str] = Field(default_factory=list, alias="generatedImageUrls")
    location: Optional[GenerationLocation] = None
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
