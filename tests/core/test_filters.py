"""
Tests for the filter stack
"""

import numpy as np
import pytest

from core import filters
from schemas import FilterChannel, FilterSettings


class TestFilterSettings:
    """Test filter state helpers"""

    def test_default_expression(self):
        """Test the identity expression"""
        expression = filters.filter_expression(filters.default_filters())
        assert expression == "brightness(100%) contrast(100%) saturate(100%)"

    def test_expression_order(self):
        """Test that channel values appear in fixed order"""
        settings = FilterSettings(brightness=120, contrast=80, saturation=0)
        assert filters.filter_expression(settings) == "brightness(120%) contrast(80%) saturate(0%)"

    def test_set_channel_returns_new_settings(self):
        """Test that settings are never modified in place"""
        original = filters.default_filters()

        updated = filters.set_channel(original, FilterChannel.CONTRAST, 150)

        assert updated.contrast == 150
        assert original.contrast == 100
        assert filters.has_changes(updated)
        assert not filters.has_changes(original)

    def test_reset_is_idempotent(self):
        """Test that resetting twice gives the same identity settings"""
        assert filters.reset() == filters.reset() == filters.default_filters()
        assert not filters.has_changes(filters.reset())

    def test_parse_expression(self):
        """Test parsing into fractions"""
        operations = filters.parse_filter_expression("brightness(120%) contrast(50%)")
        assert operations == [("brightness", pytest.approx(1.2)), ("contrast", 0.5)]

    def test_parse_skips_unknown_functions(self):
        """Test that unsupported functions are ignored"""
        operations = filters.parse_filter_expression("sepia(40%) brightness(50%)")
        assert operations == [("brightness", 0.5)]


class TestApplyFilterExpression:
    """Test raster filter application"""

    @pytest.fixture
    def gray_pixel_image(self):
        """2x2 image with every channel at 200"""
        return np.full((2, 2, 3), 200, dtype=np.uint8)

    def test_identity_returns_input(self, gray_pixel_image):
        """Test that the identity expression leaves the image untouched"""
        expression = filters.filter_expression(filters.default_filters())
        assert filters.apply_filter_expression(gray_pixel_image, expression) is gray_pixel_image

    def test_brightness(self, gray_pixel_image):
        """Test brightness scales channel values"""
        result = filters.apply_filter_expression(gray_pixel_image, "brightness(50%)")
        assert np.all(result == 100)

    def test_brightness_clamps(self, gray_pixel_image):
        """Test that values are clamped to the valid range"""
        result = filters.apply_filter_expression(gray_pixel_image, "brightness(200%)")
        assert np.all(result == 255)

    def test_zero_contrast_is_mid_gray(self, gray_pixel_image):
        """Test contrast(0%) collapses every value to mid gray"""
        result = filters.apply_filter_expression(gray_pixel_image, "contrast(0%)")
        assert np.all(result == 128)

    def test_zero_saturation_is_gray(self):
        """Test saturate(0%) turns pure red into its luma gray"""
        red = np.zeros((1, 1, 3), dtype=np.uint8)
        red[0, 0] = (0, 0, 255)  # BGR

        result = filters.apply_filter_expression(red, "saturate(0%)")

        assert result.shape == red.shape
        assert tuple(result[0, 0]) == (54, 54, 54)

    def test_channel_order_preserved(self):
        """Test that BGR channel order is kept through the RGB math"""
        blue = np.zeros((1, 1, 3), dtype=np.uint8)
        blue[0, 0] = (200, 0, 0)

        result = filters.apply_filter_expression(blue, "brightness(50%)")

        assert tuple(result[0, 0]) == (100, 0, 0)

    def test_grayscale_input(self):
        """Test that single-channel images stay single-channel"""
        gray = np.full((3, 3), 200, dtype=np.uint8)

        result = filters.apply_filter_expression(gray, "brightness(50%)")

        assert result.shape == (3, 3)
        assert np.all(result == 100)
