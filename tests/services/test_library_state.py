"""
Tests for preview session state transitions
"""

from datetime import datetime, timezone

import pytest

from schemas import CropRegion, CropUnit, FilterChannel, MediaItem
from services.library_state import (
    AdjustCrop,
    FileSizeLoaded,
    InvalidActionError,
    MetadataLoaded,
    PreviewSession,
    ResetFilters,
    SetAspect,
    SetDisplaySize,
    SetFilter,
    SetResizeScale,
    ToggleCrop,
    reduce_session,
)


@pytest.fixture
def session():
    """Fresh session with known natural size"""
    item = MediaItem(
        id="item-1",
        url="http://testserver/storage/blog-images/owner-1/a.png",
        name="a.png",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    fresh = PreviewSession(session_id=1, item=item)
    return reduce_session(fresh, MetadataLoaded(1600, 900))


def apply(session, *actions):
    for action in actions:
        session = reduce_session(session, action)
    return session


class TestCropMode:
    """Test crop mode transitions"""

    def test_toggle_on_builds_initial_crop(self, session):
        updated = apply(session, ToggleCrop())

        assert updated.crop_mode
        assert updated.crop.width == pytest.approx(90)
        assert updated.crop.x == pytest.approx(5)
        assert session.crop is None  # input untouched

    def test_toggle_off_discards_crop(self, session):
        updated = apply(session, ToggleCrop(), ToggleCrop())

        assert not updated.crop_mode
        assert updated.crop is None
        assert updated.active_crop is None

    def test_initial_crop_waits_for_size(self, session):
        """Test that crop mode without any known size has no crop yet"""
        unsized = PreviewSession(session_id=2, item=session.item)

        updated = apply(unsized, ToggleCrop())
        assert updated.crop is None

        updated = apply(updated, SetDisplaySize(800, 450))
        assert updated.crop is not None

    def test_set_aspect_recenters(self, session):
        updated = apply(session, ToggleCrop(), SetAspect(1.0))
        pixel_w = updated.crop.width * 1600 / 100
        pixel_h = updated.crop.height * 900 / 100

        assert updated.aspect == 1.0
        assert pixel_w == pytest.approx(pixel_h)

    def test_set_aspect_is_deterministic(self, session):
        first = apply(session, ToggleCrop(), SetAspect(4 / 3))
        second = apply(session, ToggleCrop(), SetAspect(4 / 3))

        assert first.crop == second.crop

    def test_unpin_keeps_crop(self, session):
        pinned = apply(session, ToggleCrop(), SetAspect(1.0))

        free = apply(pinned, SetAspect(None))

        assert free.aspect is None
        assert free.crop == pinned.crop

    def test_aspect_outside_crop_mode_only_stored(self, session):
        updated = apply(session, SetAspect(2.0))

        assert updated.aspect == 2.0
        assert updated.crop is None

    def test_adjust_crop(self, session):
        region = CropRegion(x=10, y=10, width=20, height=20)

        updated = apply(session, ToggleCrop(), AdjustCrop(region))

        assert updated.active_crop == region

    def test_adjust_crop_requires_crop_mode(self, session):
        with pytest.raises(InvalidActionError):
            apply(session, AdjustCrop(CropRegion(width=10, height=10)))

    def test_adjust_crop_out_of_bounds_pixels(self, session):
        region = CropRegion(x=1500, y=0, width=200, height=100, unit=CropUnit.PIXEL)

        with pytest.raises(InvalidActionError):
            apply(session, ToggleCrop(), AdjustCrop(region))


class TestTransformState:
    """Test resize, filter and metadata transitions"""

    def test_display_size_must_be_positive(self, session):
        with pytest.raises(InvalidActionError):
            apply(session, SetDisplaySize(0, 100))

    def test_display_size_falls_back_to_natural(self, session):
        assert session.effective_display_size == (1600.0, 900.0)
        assert apply(session, SetDisplaySize(800, 450)).effective_display_size == (800, 450)

    @pytest.mark.parametrize("percent", [9, 101, 0])
    def test_resize_scale_bounds(self, session, percent):
        with pytest.raises(InvalidActionError):
            apply(session, SetResizeScale(percent))

    def test_resize_scale_marks_edited(self, session):
        assert not session.is_edited
        assert apply(session, SetResizeScale(50)).is_edited

    def test_filters_and_reset(self, session):
        edited = apply(session, SetFilter(FilterChannel.BRIGHTNESS, 150))

        assert edited.filters.brightness == 150
        assert edited.is_edited
        assert edited.filter_expression.startswith("brightness(150%)")

        once = apply(edited, ResetFilters())
        twice = apply(once, ResetFilters())
        assert once == twice
        assert not twice.is_edited

    def test_file_size_requires_metadata(self, session):
        unsized = PreviewSession(session_id=2, item=session.item)

        assert apply(unsized, FileSizeLoaded("1.0 KB")) == unsized
        assert apply(session, FileSizeLoaded("1.0 KB")).metadata.file_size == "1.0 KB"

    def test_view(self, session):
        view = apply(session, ToggleCrop(), SetDisplaySize(800, 450)).to_view()

        assert view.session_id == 1
        assert view.crop_mode
        assert view.display_width == 800
        assert view.metadata.width == 1600
        assert not view.has_filter_changes
