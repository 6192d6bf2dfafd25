"""Admin view of the viral prompt catalogue and its export to styles."""

import json
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from editaja.config import Settings, get_settings
from editaja.crud.style import StyleCRUD
from editaja.dependencies import get_db_client, get_file_storage, get_prompt_catalog
from editaja.schemas.responses import ok_response
from editaja.services.file_storage import LocalFileStorage
from editaja.services.prompt_catalog import PromptCatalogClient, export_styles, get_batch, split_batches

router = APIRouter()


@router.get("")
async def list_prompts(catalog: PromptCatalogClient = Depends(get_prompt_catalog)) -> Dict:
    items = await catalog.get_catalog()
    return ok_response(data=items, total=len(items))


@router.get("/export/summary")
async def export_summary(
    batch: int = Query(0),
    catalog: PromptCatalogClient = Depends(get_prompt_catalog),
) -> Dict:
    """Size of one export batch and how many batches there are."""
    items = await catalog.fetch_items()
    selected = get_batch(items, batch)
    return ok_response(
        batchIndex=batch,
        totalBatches=len(split_batches(items)),
        total=sum(1 for item in selected if item.get("image")),
        items=len(selected),
    )


@router.post("/export/images")
async def mirror_batch_images(
    batch: int = Query(0),
    catalog: PromptCatalogClient = Depends(get_prompt_catalog),
    storage: LocalFileStorage = Depends(get_file_storage),
) -> Dict:
    """Copy a batch's images to ``/uploads/copas`` so exported styles point at this server."""
    selected = get_batch(await catalog.fetch_items(), batch)
    counts = await catalog.mirror_images(selected, storage)
    return ok_response(**counts)


@router.get("/export")
async def download_export(
    batch: int = Query(0),
    catalog: PromptCatalogClient = Depends(get_prompt_catalog),
    settings: Settings = Depends(get_settings),
) -> Response:
    """A batch as a JSON file accepted by ``/admin/styles/import``."""
    selected = get_batch(await catalog.fetch_items(), batch)
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")
    filename = f"viral-prompts-export-batch-{batch + 1}-{stamp}.json"
    return Response(
        content=json.dumps(export_styles(selected, settings.base_url), ensure_ascii=False, indent=2),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import")
async def import_batch(
    batch: int = Query(0),
    catalog: PromptCatalogClient = Depends(get_prompt_catalog),
    settings: Settings = Depends(get_settings),
    db_client=Depends(get_db_client),
) -> Dict:
    """Create styles straight from a batch, skipping prompts that already exist."""
    selected = get_batch(await catalog.fetch_items(), batch)
    result = StyleCRUD(db_client).import_styles(export_styles(selected, settings.base_url))
    return ok_response(
        f"Imported {result['created']} styles, skipped {result['skipped']} duplicates",
        **result,
    )
