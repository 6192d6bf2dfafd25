"""AI style generation and generation history endpoints."""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, ConfigDict, Field

from editaja.crud.anonymous import AnonymousUsageCRUD
from editaja.crud.generation import GenerationCRUD
from editaja.crud.settings import SettingsCRUD
from editaja.crud.style import StyleCRUD
from editaja.crud.tokens import TokenCRUD
from editaja.dependencies import (
    check_generation_rate_limit,
    get_anonymous_id,
    get_current_admin,
    get_db_client,
    get_image_generator,
    get_optional_user,
)
from editaja.models.generation import ANONYMOUS_USER_ID, GenerationLocation, GenerationModel
from editaja.schemas.responses import ok_response
from editaja.services.ai.image_generator import ImageGenerator, is_usable_api_key
from editaja.utils.exceptions import (
    ConfigurationError,
    InsufficientTokensError,
    QuotaExceededError,
    ValidationError,
)
from editaja.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter()


# Request Models
class TestKeyRequest(BaseModel):
    """Request model for testing an AI API key."""
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class SaveGenerationRequest(BaseModel):
    """Request model for storing a finished generation."""
    model_config = ConfigDict(populate_by_name=True)

    style_id: str = Field(..., alias="styleId", min_length=1)
    style_name: str = Field(default="", alias="styleName")
    original_image_url: str = Field(default="", alias="originalImageUrl")
    generated_image_urls: List[str] = Field(default_factory=list, alias="generatedImageUrls")
    location: Optional[GenerationLocation] = None


@router.post("/ai/generate")
async def generate_image(
    image: Optional[UploadFile] = File(None),
    style_id: Optional[str] = Form(None, alias="styleId"),
    style_prompt: Optional[str] = Form(None, alias="stylePrompt"),
    current_user: Optional[dict] = Depends(check_generation_rate_limit),
    anonymous_id: str = Depends(get_anonymous_id),
    db_client=Depends(get_db_client),
    generator: ImageGenerator = Depends(get_image_generator),
) -> Dict:
    """
    Apply a style to an uploaded photo.

    Signed-in users pay ``tokenCostPerGenerate`` diamonds, anonymous
    visitors use their daily quota. Either is charged only after the
    AI service returned images.
    """
    if image is None or not style_id:
        raise ValidationError("Missing image or styleId")

    prompt = (style_prompt or "").strip()
    if not prompt:
        prompt = StyleCRUD(db_client).get_style(style_id).get("prompt", "").strip()
    if not prompt:
        raise ValidationError("Missing stylePrompt")

    settings_crud = SettingsCRUD(db_client)
    api_key = settings_crud.get_ai_api_key()
    if not is_usable_api_key(api_key):
        raise ConfigurationError("AI API key is not configured. Please set it in admin settings.")

    token_crud = TokenCRUD(db_client, settings_crud)
    anonymous = AnonymousUsageCRUD(db_client, settings_crud)
    cost = settings_crud.get_tokens().token_cost_per_generate

    if current_user:
        balance = token_crud.get_balance(current_user["uid"])
        if balance < cost:
            raise InsufficientTokensError(
                "Insufficient diamonds. Please top up to continue.",
                details={"tokens": balance, "required": cost},
            )
    else:
        quota = anonymous.get_status(anonymous_id)
        if not quota["canGenerate"]:
            raise QuotaExceededError(
                "Daily free generation limit reached. Please sign in to continue.",
                details={"max": quota["max"], "count": quota["count"]},
            )

    content = await image.read()
    if not content:
        raise ValidationError("Uploaded image is empty")

    result = await generator.generate(content, prompt, api_key)

    if current_user:
        remaining = token_crud.deduct(current_user["uid"], cost)
        if remaining is None:
            # Balance spent concurrently while generating
            logger.warning(f"Could not charge {current_user['uid']} for task {result['taskId']}")
            remaining = token_crud.get_balance(current_user["uid"])
        return ok_response(**result, tokensRemaining=remaining)

    count = anonymous.increment(anonymous_id)
    max_generations = settings_crud.get_tokens().max_anonymous_generations
    return ok_response(**result, anonymousRemaining=max(0, max_generations - count))


@router.post("/ai/test")
async def test_ai_key(
    request: TestKeyRequest,
    admin: dict = Depends(get_current_admin),
    db_client=Depends(get_db_client),
    generator: ImageGenerator = Depends(get_image_generator),
) -> Dict:
    """Check an API key (or the configured one) against the AI service."""
    api_key = (request.api_key or "").strip() or SettingsCRUD(db_client).get_ai_api_key()
    if not is_usable_api_key(api_key):
        raise ValidationError("API key is required")
    return await generator.test_api_key(api_key)


@router.post("/generations")
async def save_generation(
    request: SaveGenerationRequest,
    current_user: Optional[dict] = Depends(get_optional_user),
    db_client=Depends(get_db_client),
) -> Dict:
    """
    Store a finished generation for the history and the admin gallery.

    A storage failure is reported as success: the user already has the
    images and must not see an error for bookkeeping.
    """
    generation = GenerationModel(
        user_id=current_user["uid"] if current_user else ANONYMOUS_USER_ID,
        style_id=request.style_id,
        style_name=request.style_name,
        original_image_url=request.original_image_url,
        generated_image_urls=request.generated_image_urls,
        location=request.location,
    )
    try:
        generation_id = GenerationCRUD(db_client).save_generation(generation)
    except Exception as e:
        logger.error(f"Failed to save generation: {e}", exc_info=True)
        return ok_response(id="save-failed-but-ok")
    return ok_response(id=generation_id)
