"""
Library Controller - orchestrates the media library and the image editor.

The controller owns all transient state: the cached item list, search and
selection, and the single open preview session. Transform state changes
go through the pure reducer in ``services.library_state``; every backend
call is awaited and caught here, so callers always get a result object
and the controller always returns to a stable state.

States: BROWSING -> PREVIEW_OPEN -> SAVING | DOWNLOADING -> BROWSING
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, List, Optional, Set, Union

from api.exceptions import (
    ExternalIOError,
    MediaItemNotFoundException,
    MediaPipelineException,
    NotAuthenticatedError,
    ProcessingUnavailableError,
    ValidationFailure,
)
from core import geometry
from core.compositor import Compositor
from core.constants import (
    CompositorConstants,
    ErrorMessages,
    LibraryConstants,
    SuccessMessages,
)
from core.image.converters import ImageConverters
from core.image.loader import ImageLoader
from core.utils.formatting import derived_file_name, format_file_size
from schemas import (
    ActionResult,
    BulkDeleteResult,
    CropRegion,
    ErrorKind,
    FilterChannel,
    LibrarySnapshot,
    LibraryState,
    MediaItem,
    Notification,
    NotificationLevel,
    UploadRejection,
    UploadReport,
)
from services.library_state import (
    AdjustCrop,
    FileSizeLoaded,
    InvalidActionError,
    MetadataLoaded,
    PreviewSession,
    ResetFilters,
    SessionAction,
    SetAspect,
    SetDisplaySize,
    SetFilter,
    SetResizeScale,
    ToggleCrop,
    reduce_session,
)
from services.metadata_probe import MetadataProbe
from services.persistence_gateway import PersistenceGateway, extension_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadedFile:
    """File received for upload"""

    name: str
    content_type: Optional[str]
    data: bytes


@dataclass(frozen=True)
class DownloadResult:
    """Rendered image delivered to the caller instead of persisted"""

    success: bool
    message: str = ""
    error_kind: Optional[ErrorKind] = None
    file_name: Optional[str] = None
    content: Optional[bytes] = None
    content_type: str = CompositorConstants.OUTPUT_CONTENT_TYPE


class LibraryController:
    """Session-scoped controller behind the media library UI"""

    def __init__(
        self,
        gateway: PersistenceGateway,
        probe: MetadataProbe,
        loader: ImageLoader,
        compositor: Compositor,
        max_upload_bytes: int = LibraryConstants.DEFAULT_MAX_UPLOAD_MB * 1024 * 1024,
    ):
        """
        Initialize controller

        Args:
            gateway: Persistence gateway for all backend mutations
            probe: Metadata probe for the preview
            loader: Source image loader used before composition
            compositor: Raster compositor
            max_upload_bytes: Largest accepted upload
        """
        self.gateway = gateway
        self.probe = probe
        self.loader = loader
        self.compositor = compositor
        self.max_upload_bytes = max_upload_bytes

        self.state = LibraryState.BROWSING
        self.items: List[MediaItem] = []
        self.search_query = ""
        self.selected_ids: Set[str] = set()
        self.selection_mode = False
        self.session: Optional[PreviewSession] = None

        self.notifications: Deque[Notification] = deque(maxlen=LibraryConstants.MAX_NOTIFICATIONS)
        self._next_session_id = 0
        self._background_tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------
    @property
    def filtered_items(self) -> List[MediaItem]:
        """Cached items whose name contains the search query (case-insensitive)"""
        query = self.search_query.lower()
        return [item for item in self.items if query in item.name.lower()]

    def drain_notifications(self) -> List[Notification]:
        """Return and clear pending notifications"""
        pending = list(self.notifications)
        self.notifications.clear()
        return pending

    def snapshot(self, drain: bool = True) -> LibrarySnapshot:
        """Externally observable state"""
        return LibrarySnapshot(
            state=self.state,
            total_items=len(self.items),
            items=self.filtered_items,
            search_query=self.search_query,
            selection_mode=self.selection_mode,
            selected_ids=sorted(self.selected_ids),
            preview=self.session.to_view() if self.session else None,
            notifications=self.drain_notifications() if drain else list(self.notifications),
        )

    async def wait_for_background_tasks(self):
        """Wait for pending metadata lookups"""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _notify(self, level: NotificationLevel, message: str, kind: Optional[ErrorKind] = None):
        self.notifications.append(Notification(level=level, message=message, error_kind=kind))

    def _failure(
        self, error: MediaPipelineException, template: Optional[str] = None
    ) -> ActionResult:
        """Record a caught failure as a notification and a failed result"""
        if template and not isinstance(error, NotAuthenticatedError):
            message = template.format(error=error.message)
        else:
            message = error.message
        logger.warning(f"Action failed ({error.kind.value}): {message}")
        self._notify(NotificationLevel.ERROR, message, error.kind)
        return ActionResult(success=False, message=message, error_kind=error.kind)

    def _download_failure(
        self, error: MediaPipelineException, template: Optional[str] = None
    ) -> DownloadResult:
        failure = self._failure(error, template)
        return DownloadResult(success=False, message=failure.message, error_kind=failure.error_kind)

    def _is_current(self, session: PreviewSession) -> bool:
        return self.session is not None and self.session.session_id == session.session_id

    def _busy(self) -> bool:
        return self.state in (LibraryState.SAVING, LibraryState.DOWNLOADING)

    async def _find_item(self, item_id: str) -> MediaItem:
        """Look up an item in the cache, reloading once on a miss"""
        for item in self.items:
            if item.id == item_id:
                return item

        await self.load()
        for item in self.items:
            if item.id == item_id:
                return item
        raise MediaItemNotFoundException(item_id)

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Browsing
    # ------------------------------------------------------------------
    async def load(self) -> ActionResult:
        """Reload the cached item list from the backend"""
        try:
            self.items = await self.gateway.list_items()
        except MediaPipelineException as e:
            return self._failure(e, ErrorMessages.LOAD_FAILED)

        known = {item.id for item in self.items}
        self.selected_ids &= known
        if not self.selected_ids:
            self.selection_mode = False

        return ActionResult(success=True, message=f"{len(self.items)} items")

    def search(self, query: str):
        """Set the name filter"""
        self.search_query = query or ""

    def toggle_select(self, item_id: str):
        """Add or remove one item from the selection"""
        if item_id in self.selected_ids:
            self.selected_ids.discard(item_id)
        else:
            self.selected_ids.add(item_id)
        self.selection_mode = bool(self.selected_ids)

    def select_all(self):
        """Select every filtered item, or clear when all are already selected"""
        filtered_ids = {item.id for item in self.filtered_items}
        if filtered_ids and self.selected_ids == filtered_ids:
            self.clear_selection()
        else:
            self.selected_ids = filtered_ids
            self.selection_mode = bool(filtered_ids)

    def clear_selection(self):
        self.selected_ids = set()
        self.selection_mode = False

    async def upload_files(self, files: Iterable[UploadedFile]) -> UploadReport:
        """
        Upload image files into the library.

        Each file is validated (image content type, size limit) and
        uploaded independently; one failure never stops the rest.
        """
        files = list(files)
        report = UploadReport()

        try:
            self.gateway.require_owner()
        except NotAuthenticatedError as e:
            self._failure(e)
            report.rejected = [
                UploadRejection(name=f.name, reason=e.message, error_kind=e.kind) for f in files
            ]
            return report

        max_mb = self.max_upload_bytes // (1024 * 1024)
        for upload in files:
            if not (upload.content_type or "").startswith("image/"):
                error = ValidationFailure(ErrorMessages.NOT_AN_IMAGE.format(name=upload.name))
            elif len(upload.data) > self.max_upload_bytes:
                error = ValidationFailure(
                    ErrorMessages.FILE_TOO_LARGE.format(name=upload.name, max_mb=max_mb)
                )
            else:
                error = None

            if error is None:
                try:
                    item = await self.gateway.upload(
                        upload.data, upload.name, extension_for(upload.name, upload.content_type)
                    )
                except MediaPipelineException as e:
                    error = e
                    error.message = ErrorMessages.UPLOAD_FAILED.format(
                        name=upload.name, error=e.message
                    )
                else:
                    report.uploaded.append(item)
                    self._notify(
                        NotificationLevel.SUCCESS, SuccessMessages.UPLOADED.format(name=upload.name)
                    )
                    continue

            self._failure(error)
            report.rejected.append(
                UploadRejection(name=upload.name, reason=error.message, error_kind=error.kind)
            )

        await self.load()
        return report

    async def add_by_url(self, url: str) -> ActionResult:
        """Register an external image URL"""
        url = (url or "").strip()
        if not url:
            return self._failure(ValidationFailure(ErrorMessages.EMPTY_URL))

        try:
            item = await self.gateway.register_url(url)
        except MediaPipelineException as e:
            return self._failure(e, ErrorMessages.ADD_URL_FAILED)

        self._notify(NotificationLevel.SUCCESS, SuccessMessages.URL_ADDED)
        await self.load()
        return ActionResult(success=True, message=SuccessMessages.URL_ADDED, item=item)

    async def delete(self, item_id: str) -> ActionResult:
        """Delete one item (storage object best effort, record authoritative)"""
        try:
            item = await self._find_item(item_id)
            await self.gateway.remove(item)
        except MediaPipelineException as e:
            return self._failure(e, ErrorMessages.DELETE_FAILED)

        if self.session is not None and self.session.item.id == item_id:
            self.close_preview()

        self._notify(NotificationLevel.SUCCESS, SuccessMessages.DELETED)
        await self.load()
        return ActionResult(success=True, message=SuccessMessages.DELETED, item=item)

    async def bulk_delete(self, ids: Optional[Iterable[str]] = None) -> BulkDeleteResult:
        """
        Delete several items, the current selection by default.

        Items are removed one by one; failures are counted, never abort the
        batch. Unknown ids count as failures.
        """
        requested = list(ids) if ids is not None else sorted(self.selected_ids)
        if not requested:
            return BulkDeleteResult(requested=0, deleted=0)

        by_id = {item.id: item for item in self.items}
        items = [by_id[i] for i in requested if i in by_id]
        unknown = [i for i in requested if i not in by_id]

        try:
            result = await self.gateway.bulk_remove(items)
        except MediaPipelineException as e:
            self._failure(e)
            return BulkDeleteResult(
                requested=len(requested), deleted=0, failed_ids=requested, error_kind=e.kind
            )

        failed_ids = result.failed_ids + unknown
        result = BulkDeleteResult(
            requested=len(requested),
            deleted=result.deleted,
            failed_ids=failed_ids,
            error_kind=ErrorKind.PARTIAL_BULK_FAILURE if failed_ids else None,
        )

        if self.session is not None and self.session.item.id in set(requested) - set(failed_ids):
            self.close_preview()

        plural = "s" if result.deleted != 1 else ""
        message = SuccessMessages.BULK_DELETED.format(count=result.deleted, plural=plural)
        if failed_ids:
            message = f"{message}, {len(failed_ids)} failed"
            self._notify(NotificationLevel.ERROR, message, ErrorKind.PARTIAL_BULK_FAILURE)
        else:
            self._notify(NotificationLevel.SUCCESS, message)

        self.clear_selection()
        await self.load()
        return result

    # ------------------------------------------------------------------
    # Preview session
    # ------------------------------------------------------------------
    async def open_preview(self, item_id: str) -> ActionResult:
        """
        Open the preview for one item.

        Metadata is probed in the background; the preview is usable
        immediately and dimensions fill in when they arrive.
        """
        if self._busy():
            return self._failure(
                ValidationFailure(f"Cannot open a preview while {self.state.value}")
            )

        try:
            item = await self._find_item(item_id)
        except MediaPipelineException as e:
            return self._failure(e)

        if self.session is not None:
            self.close_preview()

        self._next_session_id += 1
        self.session = PreviewSession(session_id=self._next_session_id, item=item)
        self.state = LibraryState.PREVIEW_OPEN
        self._spawn(self._load_metadata(self.session.session_id, item.url))

        logger.debug(f"Opened preview session {self.session.session_id} for {item.id}")
        return ActionResult(success=True, item=item)

    def close_preview(self):
        """Discard the preview session and all its transform state"""
        if self.session is not None:
            logger.debug(f"Closed preview session {self.session.session_id}")
        self.session = None
        self.state = LibraryState.BROWSING

    async def _load_metadata(self, session_id: int, url: str):
        """Probe dimensions, then byte size; results for closed sessions are dropped"""
        try:
            dimensions = await self.probe.probe_dimensions(url)
            if dimensions is None:
                return
            if not self._apply_if_current(session_id, MetadataLoaded(*dimensions)):
                return

            size = await self.probe.probe_file_size(url)
            if size is not None:
                self._apply_if_current(session_id, FileSizeLoaded(format_file_size(size)))
        except Exception as e:
            logger.error(f"Metadata lookup for session {session_id} failed: {e}", exc_info=True)

    def _apply_if_current(self, session_id: int, action: SessionAction) -> bool:
        if self.session is None or self.session.session_id != session_id:
            logger.debug(f"Discarding {type(action).__name__} for stale session {session_id}")
            return False
        self.session = reduce_session(self.session, action)
        return True

    def dispatch(self, action: SessionAction) -> ActionResult:
        """Apply a transform action to the open preview"""
        if self.session is None:
            return self._failure(ValidationFailure(ErrorMessages.NO_PREVIEW))

        try:
            self.session = reduce_session(self.session, action)
        except InvalidActionError as e:
            return self._failure(ValidationFailure(str(e)))
        return ActionResult(success=True)

    def toggle_crop(self) -> ActionResult:
        return self.dispatch(ToggleCrop())

    def set_aspect(self, ratio: Union[None, float, str]) -> ActionResult:
        """Pin an aspect ratio (preset label or number) or unpin with None/"Free" """
        try:
            parsed = geometry.parse_aspect(ratio)
        except ValueError:
            return self._failure(
                ValidationFailure(ErrorMessages.INVALID_ASPECT.format(value=ratio))
            )
        return self.dispatch(SetAspect(parsed))

    def adjust_crop(self, region: CropRegion) -> ActionResult:
        return self.dispatch(AdjustCrop(region))

    def set_display_size(self, width: float, height: float) -> ActionResult:
        return self.dispatch(SetDisplaySize(width, height))

    def set_resize_scale(self, percent: int) -> ActionResult:
        return self.dispatch(SetResizeScale(percent))

    def set_filter(self, channel: Union[FilterChannel, str], value: int) -> ActionResult:
        try:
            channel = FilterChannel(channel)
        except ValueError:
            return self._failure(ValidationFailure(f"Unknown filter channel: {channel}"))
        return self.dispatch(SetFilter(channel, value))

    def reset_filters(self) -> ActionResult:
        return self.dispatch(ResetFilters())

    # ------------------------------------------------------------------
    # Render, save, download
    # ------------------------------------------------------------------
    async def _render(self, session: PreviewSession) -> bytes:
        """
        Composite a captured session.

        Raises:
            ExternalIOError: Source image could not be fetched
            ProcessingUnavailableError: Source undecodable or no output surface
        """
        try:
            data = await self.loader.load(session.item.url)
        except Exception as e:
            raise ExternalIOError(f"Failed to load source image: {e}") from e

        source = await asyncio.to_thread(ImageConverters.decode_to_bgr, data)
        if source is None:
            raise ProcessingUnavailableError()

        encoded = await asyncio.to_thread(
            self.compositor.render,
            source,
            session.active_crop,
            session.resize_scale,
            session.filter_expression,
            session.effective_display_size,
        )
        if encoded is None:
            raise ProcessingUnavailableError()
        return encoded

    async def save(self) -> ActionResult:
        """
        Composite the preview and store it as a new library item.

        The source item is never overwritten. On success the preview closes
        and the library reloads; on failure the preview stays open.
        """
        session = self.session
        if session is None:
            return self._failure(ValidationFailure(ErrorMessages.NO_PREVIEW))
        if self._busy():
            return self._failure(ValidationFailure(f"Cannot save while {self.state.value}"))

        try:
            self.gateway.require_owner()
        except NotAuthenticatedError as e:
            return self._failure(e)

        self.state = LibraryState.SAVING
        try:
            encoded = await self._render(session)
            item = await self.gateway.upload(
                encoded, derived_file_name(session.item.name), CompositorConstants.OUTPUT_EXTENSION
            )
        except MediaPipelineException as e:
            return self._failure(e, ErrorMessages.SAVE_FAILED)
        finally:
            if self._is_current(session) and self.state == LibraryState.SAVING:
                self.state = LibraryState.PREVIEW_OPEN

        if self._is_current(session):
            self.close_preview()
        else:
            logger.info(f"Save for closed session {session.session_id} finished")

        self._notify(NotificationLevel.SUCCESS, SuccessMessages.EDIT_SAVED)
        await self.load()
        return ActionResult(success=True, message=SuccessMessages.EDIT_SAVED, item=item)

    async def download(self) -> DownloadResult:
        """Composite the preview and hand the bytes back without persisting"""
        session = self.session
        if session is None:
            return self._download_failure(ValidationFailure(ErrorMessages.NO_PREVIEW))
        if self._busy():
            return self._download_failure(
                ValidationFailure(f"Cannot download while {self.state.value}")
            )

        self.state = LibraryState.DOWNLOADING
        try:
            encoded = await self._render(session)
        except MediaPipelineException as e:
            return self._download_failure(e, ErrorMessages.DOWNLOAD_FAILED)
        finally:
            if self._is_current(session):
                self.state = LibraryState.PREVIEW_OPEN

        self._notify(NotificationLevel.SUCCESS, SuccessMessages.DOWNLOADED)
        return DownloadResult(
            success=True,
            message=SuccessMessages.DOWNLOADED,
            file_name=derived_file_name(session.item.name),
            content=encoded,
        )
