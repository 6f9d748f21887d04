"""
Preview API Router - Image editor session (crop, resize, filters, save)
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from api.dependencies import ensure_success, get_library_controller
from api.exceptions import ValidationFailure, exception_for_kind, safe_endpoint
from core.constants import ErrorMessages
from schemas import (
    ActionResult,
    AspectRequest,
    CropRegion,
    DisplaySizeRequest,
    FilterChannel,
    FilterValueRequest,
    PreviewView,
    ResizeRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _preview_view(controller) -> PreviewView:
    """Current preview, or 400 when none is open"""
    if controller.session is None:
        raise ValidationFailure(ErrorMessages.NO_PREVIEW)
    return controller.session.to_view()


@router.get("")
@safe_endpoint
async def get_preview(controller=Depends(get_library_controller)) -> PreviewView:
    """Get the open preview session"""
    return _preview_view(controller)


@router.delete("")
@safe_endpoint
async def close_preview(controller=Depends(get_library_controller)) -> dict:
    """Close the preview, discarding all edits"""
    controller.close_preview()
    return {"success": True, "message": "Preview closed"}


@router.put("/display-size")
@safe_endpoint
async def set_display_size(
    request: DisplaySizeRequest, controller=Depends(get_library_controller)
) -> PreviewView:
    """Report the rendered size of the preview image"""
    ensure_success(controller.set_display_size(request.width, request.height))
    return _preview_view(controller)


@router.post("/crop/toggle")
@safe_endpoint
async def toggle_crop(controller=Depends(get_library_controller)) -> PreviewView:
    """Enter or leave crop mode"""
    ensure_success(controller.toggle_crop())
    return _preview_view(controller)


@router.put("/crop")
@safe_endpoint
async def adjust_crop(
    region: CropRegion, controller=Depends(get_library_controller)
) -> PreviewView:
    """Replace the crop after an interactive adjustment"""
    ensure_success(controller.adjust_crop(region))
    return _preview_view(controller)


@router.put("/aspect")
@safe_endpoint
async def set_aspect(
    request: AspectRequest, controller=Depends(get_library_controller)
) -> PreviewView:
    """Pin an aspect ratio preset or unpin with "Free" / null"""
    ensure_success(controller.set_aspect(request.ratio))
    return _preview_view(controller)


@router.put("/resize")
@safe_endpoint
async def set_resize_scale(
    request: ResizeRequest, controller=Depends(get_library_controller)
) -> PreviewView:
    """Set the uniform output scale"""
    ensure_success(controller.set_resize_scale(request.scale_percent))
    return _preview_view(controller)


@router.put("/filters/{channel}")
@safe_endpoint
async def set_filter(
    channel: FilterChannel,
    request: FilterValueRequest,
    controller=Depends(get_library_controller),
) -> PreviewView:
    """Set one filter channel"""
    ensure_success(controller.set_filter(channel, request.value))
    return _preview_view(controller)


@router.post("/filters/reset")
@safe_endpoint
async def reset_filters(controller=Depends(get_library_controller)) -> PreviewView:
    """Reset all filter channels to identity"""
    ensure_success(controller.reset_filters())
    return _preview_view(controller)


@router.post("/save")
@safe_endpoint
async def save_edit(controller=Depends(get_library_controller)) -> ActionResult:
    """Save the edited image as a new library item"""
    return ensure_success(await controller.save())


@router.get("/download")
@safe_endpoint
async def download_edit(controller=Depends(get_library_controller)) -> Response:
    """Download the edited image without saving it"""
    result = await controller.download()
    if not result.success:
        raise exception_for_kind(result.error_kind, result.message)

    return Response(
        content=result.content,
        media_type=result.content_type,
        headers={"Content-Disposition": f'attachment; filename="{result.file_name}"'},
    )


# Declared last so fixed paths such as /save take precedence
@router.post("/{item_id}")
@safe_endpoint
async def open_preview(item_id: str, controller=Depends(get_library_controller)) -> PreviewView:
    """Open the preview for an item; metadata fills in asynchronously"""
    ensure_success(await controller.open_preview(item_id))
    return _preview_view(controller)
