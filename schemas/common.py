"""
Common data structures shared by the transform pipeline.

This module contains the transform-state value objects:
- CropRegion: crop rectangle relative to the displayed image
- FilterSettings: brightness/contrast/saturation percentages
- ImageMetadata: derived natural size and optional byte size
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.enums import CropUnit

# Tolerance for float drift when checking percent bounds
_PERCENT_EPSILON = 1e-6


class CropRegion(BaseModel):
    """
    Crop rectangle relative to the displayed (not natural) image size.

    Instances are immutable; geometry helpers always return new regions.
    """

    model_config = ConfigDict(frozen=True)

    x: float = Field(0.0, ge=0, description="Left edge")
    y: float = Field(0.0, ge=0, description="Top edge")
    width: float = Field(..., gt=0, description="Width")
    height: float = Field(..., gt=0, description="Height")
    unit: CropUnit = Field(CropUnit.PERCENT, description="Percent of displayed size or pixels")

    @model_validator(mode="after")
    def _check_percent_bounds(self) -> "CropRegion":
        if self.unit == CropUnit.PERCENT:
            if self.x + self.width > 100 + _PERCENT_EPSILON:
                raise ValueError(f"x + width exceeds 100% ({self.x + self.width:.4f})")
            if self.y + self.height > 100 + _PERCENT_EPSILON:
                raise ValueError(f"y + height exceeds 100% ({self.y + self.height:.4f})")
        return self


class FilterSettings(BaseModel):
    """Three independent tone percentages; 100 is identity."""

    model_config = ConfigDict(frozen=True)

    brightness: int = 100
    contrast: int = 100
    saturation: int = 100


class ImageMetadata(BaseModel):
    """Natural pixel size of the previewed image plus optional byte size."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    file_size: Optional[str] = Field(None, description="Human readable byte size")
