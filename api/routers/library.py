"""
Library API Router - Browsing, uploads and deletions
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from api.dependencies import ensure_success, get_library_controller
from api.exceptions import safe_endpoint
from schemas import (
    ActionResult,
    AddUrlRequest,
    BulkDeleteRequest,
    BulkDeleteResult,
    LibrarySnapshot,
    UploadReport,
)
from services.library_controller import UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("")
@safe_endpoint
async def get_library(
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    controller=Depends(get_library_controller),
) -> LibrarySnapshot:
    """Get the library snapshot (items, selection, preview, notifications)"""
    if search is not None:
        controller.search(search)
    return controller.snapshot()


@router.post("/reload")
@safe_endpoint
async def reload_library(controller=Depends(get_library_controller)) -> LibrarySnapshot:
    """Reload items from the backend"""
    ensure_success(await controller.load())
    return controller.snapshot()


@router.post("/upload")
@safe_endpoint
async def upload_images(
    files: List[UploadFile] = File(...),
    controller=Depends(get_library_controller),
) -> UploadReport:
    """
    Upload one or more images.

    Each file is validated and uploaded independently; rejected files are
    listed in the report.
    """
    # One byte past the limit is enough for the size check to reject
    read_limit = controller.max_upload_bytes + 1
    uploads = []
    for upload in files:
        uploads.append(
            UploadedFile(
                name=upload.filename or "upload",
                content_type=upload.content_type,
                data=await upload.read(read_limit),
            )
        )

    report = await controller.upload_files(uploads)
    logger.info(f"Upload: {len(report.uploaded)} stored, {len(report.rejected)} rejected")
    return report


@router.post("/url")
@safe_endpoint
async def add_image_by_url(
    request: AddUrlRequest, controller=Depends(get_library_controller)
) -> ActionResult:
    """Register an external image by URL"""
    return ensure_success(await controller.add_by_url(request.url))


@router.delete("/items/{item_id}")
@safe_endpoint
async def delete_image(item_id: str, controller=Depends(get_library_controller)) -> ActionResult:
    """Delete one image and its stored object"""
    return ensure_success(await controller.delete(item_id))


@router.post("/selection/{item_id}/toggle")
@safe_endpoint
async def toggle_selection(
    item_id: str, controller=Depends(get_library_controller)
) -> LibrarySnapshot:
    """Add or remove an item from the selection"""
    controller.toggle_select(item_id)
    return controller.snapshot(drain=False)


@router.post("/selection/all")
@safe_endpoint
async def select_all(controller=Depends(get_library_controller)) -> LibrarySnapshot:
    """Select all filtered items, or clear when all are selected"""
    controller.select_all()
    return controller.snapshot(drain=False)


@router.delete("/selection")
@safe_endpoint
async def clear_selection(controller=Depends(get_library_controller)) -> LibrarySnapshot:
    """Leave selection mode"""
    controller.clear_selection()
    return controller.snapshot(drain=False)


@router.post("/bulk-delete")
@safe_endpoint
async def bulk_delete(
    request: BulkDeleteRequest, controller=Depends(get_library_controller)
) -> BulkDeleteResult:
    """
    Delete several images (the current selection when no ids are given).

    Partial failures are reported in the result, not as an error status.
    """
    return await controller.bulk_delete(request.ids)
