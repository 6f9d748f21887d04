"""
Constants and configuration values for the Media Pipeline service.
Centralizes all magic numbers and configuration constants.
"""

from typing import Dict, Optional


# Geometry Constants
class CropConstants:
    """Constants for crop rectangle computation."""

    # Working ratio when no aspect ratio is pinned
    DEFAULT_WORKING_ASPECT = 16 / 9

    # Share of the displayed width covered by a new crop
    INITIAL_CROP_WIDTH_PERCENT = 90.0
    RECENTER_CROP_WIDTH_PERCENT = 80.0

    FREE_LABEL = "Free"

    # Preset label -> width/height ratio (None = not pinned)
    ASPECT_PRESETS: Dict[str, Optional[float]] = {
        "Free": None,
        "16:9": 16 / 9,
        "4:3": 4 / 3,
        "1:1": 1.0,
        "3:4": 3 / 4,
        "9:16": 9 / 16,
        "2:1": 2.0,
        "21:9": 21 / 9,
    }


# Filter Constants
class FilterConstants:
    """Constants for the brightness/contrast/saturation stack."""

    IDENTITY_VALUE = 100
    MIN_VALUE = 0
    MAX_VALUE = 200

    # Luminance coefficients of the CSS saturate() matrix
    LUMA_R = 0.213
    LUMA_G = 0.715
    LUMA_B = 0.072


# Resize Constants
class ResizeConstants:
    """Constants for uniform output scaling."""

    DEFAULT_SCALE_PERCENT = 100
    MIN_SCALE_PERCENT = 10
    MAX_SCALE_PERCENT = 100


# Composition Constants
class CompositorConstants:
    """Constants for raster composition and encoding."""

    JPEG_QUALITY = 90  # 0.9 on a 0-1 scale
    OUTPUT_EXTENSION = "jpg"
    OUTPUT_CONTENT_TYPE = "image/jpeg"
    EDITED_SUFFIX = "-edited"

    # Largest surface that can be allocated
    MAX_SURFACE_DIMENSION = 16384
    MAX_SURFACE_AREA = 268_435_456


# Library Constants
class LibraryConstants:
    """Constants related to media library storage and records."""

    DEFAULT_BUCKET = "blog-images"
    TABLE_NAME = "media_library"
    DEFAULT_MAX_UPLOAD_MB = 5
    RANDOM_SUFFIX_LENGTH = 7
    EXTERNAL_IMAGE_NAME = "External Image"
    FALLBACK_EXTENSION = "jpg"

    MAX_NOTIFICATIONS = 50
    DEFAULT_FETCH_TIMEOUT_SECONDS = 15.0
    DEFAULT_FETCH_MAX_MB = 20


# System Constants
class SystemConstants:
    """Constants for system operations."""

    LOG_LEVEL_DEFAULT = "INFO"
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    DATA_DIR = "./data"


# Error Messages
class ErrorMessages:
    """Standard error messages."""

    NOT_AUTHENTICATED = "You must be logged in"
    ITEM_NOT_FOUND = "Media item {item_id} not found"
    NO_PREVIEW = "No image is being previewed"
    EMPTY_URL = "Image URL must not be empty"
    NOT_AN_IMAGE = "{name} is not an image file"
    FILE_TOO_LARGE = "{name} is too large (max {max_mb}MB)"
    INVALID_CROP = "Invalid crop region: {reason}"
    INVALID_ASPECT = "Invalid aspect ratio: {value}"
    INVALID_SCALE = "Resize scale must be between {min}% and {max}%"
    INVALID_DISPLAY_SIZE = "Displayed size must be positive, got {width}x{height}"
    PROCESSING_FAILED = "Failed to process image"
    UPLOAD_FAILED = "Failed to upload {name}: {error}"
    SAVE_FAILED = "Failed to save: {error}"
    DOWNLOAD_FAILED = "Failed to download: {error}"
    DELETE_FAILED = "Failed to delete image: {error}"
    LOAD_FAILED = "Failed to load media library: {error}"
    ADD_URL_FAILED = "Failed to add image: {error}"
    STORAGE_PATH_INVALID = "Storage path escapes bucket: {path}"


# Success Messages
class SuccessMessages:
    """Standard success messages."""

    UPLOADED = "{name} uploaded successfully"
    URL_ADDED = "Image added to library"
    EDIT_SAVED = "Edited image saved to library"
    DOWNLOADED = "Image downloaded"
    DELETED = "Image removed from library"
    BULK_DELETED = "{count} image{plural} deleted"
