"""Value types shared by the sticker layout, rendering and export code."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum


class InvalidConfigurationError(ValueError):
    """Raised when a configuration is rejected before any work starts."""


@dataclass(frozen=True)
class StickerRecord:
    """Content of a single sticker."""

    id: str
    name: str = ""
    phone: str = ""
    email: str = ""
    website: str = ""
    qr_data: str = ""
    logo: bytes | None = field(default=None, repr=False)
    number: int | None = None
    formatted_number: str | None = None

    @property
    def qr_payload(self) -> str:
        """Return the string to encode, or ``""`` when nothing is available."""

        for candidate in (self.qr_data, self.website, self.phone):
            if candidate and candidate.strip():
                return candidate
        if self.number is not None:
            return str(self.number)
        return ""


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Spacing:
    top: float
    middle: float
    bottom: float


@dataclass(frozen=True)
class StickerDimensions:
    """Physical sticker configuration in centimeters.

    The QR region is square: diverging QR sides are normalised to the width
    on construction, and ``with_qr_width``/``with_qr_height`` always set both.
    """

    sticker: Size
    logo: Size
    qr: Size
    contact: Size
    spacing: Spacing

    def __post_init__(self) -> None:
        if self.qr.width != self.qr.height:
            object.__setattr__(self, "qr", Size(self.qr.width, self.qr.width))

    def with_qr_width(self, value: float) -> StickerDimensions:
        return replace(self, qr=Size(value, value))

    def with_qr_height(self, value: float) -> StickerDimensions:
        return replace(self, qr=Size(value, value))

    def describe(self) -> str:
        return f"{self.sticker.width:g}x{self.sticker.height:g}cm"

    def edited(
        self,
        *,
        sticker: Size | None = None,
        logo: Size | None = None,
        contact: Size | None = None,
        spacing: Spacing | None = None,
        qr_width: float | None = None,
        qr_height: float | None = None,
    ) -> StickerDimensions:
        """Return a copy with the given fields replaced.

        QR edits go through ``with_qr_width`` then ``with_qr_height``, so when
        both are given the height is applied last and wins.
        """
        result = replace(
            self,
            sticker=sticker or self.sticker,
            logo=logo or self.logo,
            contact=contact or self.contact,
            spacing=spacing or self.spacing,
        )
        if qr_width is not None:
            result = result.with_qr_width(qr_width)
        if qr_height is not None:
            result = result.with_qr_height(qr_height)
        return result


DEFAULT_DIMENSIONS = StickerDimensions(
    sticker=Size(5.0, 8.0),
    logo=Size(3.8, 2.6),
    qr=Size(3.1, 3.1),
    contact=Size(3.8, 1.0),
    spacing=Spacing(0.3, 0.3, 0.3),
)


@dataclass(frozen=True)
class Region:
    """Axis-aligned rectangle in pixels, origin at the canvas top-left."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def overlaps(self, other: Region) -> bool:
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )


@dataclass(frozen=True)
class PixelLayout:
    width: float
    height: float
    logo: Region
    qr: Region
    contact: Region

    @property
    def canvas_size(self) -> tuple[int, int]:
        return int(self.width), int(self.height)

    @property
    def regions(self) -> tuple[Region, Region, Region]:
        return self.logo, self.qr, self.contact


class PageFormat(StrEnum):
    A4 = "A4"
    A3 = "A3"
    A5 = "A5"
    LETTER = "Letter"
    LEGAL = "Legal"
    CUSTOM = "Custom"


# width, height in millimeters (portrait)
PAGE_FORMATS: dict[PageFormat, tuple[float, float]] = {
    PageFormat.A4: (210.0, 297.0),
    PageFormat.A3: (297.0, 420.0),
    PageFormat.A5: (148.0, 210.0),
    PageFormat.LETTER: (215.9, 279.4),
    PageFormat.LEGAL: (215.9, 355.6),
}


class Orientation(StrEnum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class Quality(StrEnum):
    DRAFT = "draft"
    NORMAL = "normal"
    HIGH = "high"


@dataclass(frozen=True)
class Margins:
    top: float
    bottom: float
    left: float
    right: float


@dataclass(frozen=True)
class PageConfiguration:
    """Print page settings; lengths are in millimeters."""

    page_format: PageFormat = PageFormat.A4
    custom_width_mm: float = 210.0
    custom_height_mm: float = 297.0
    orientation: Orientation = Orientation.PORTRAIT
    dpi: int = 300
    margins: Margins = Margins(10.0, 10.0, 10.0, 10.0)
    gap_horizontal_mm: float = 5.0
    gap_vertical_mm: float = 5.0
    sticker_scale: float = 1.0
    quality: Quality = Quality.NORMAL

    @property
    def page_size_mm(self) -> tuple[float, float]:
        """Return the effective (width, height) after the orientation swap."""

        if self.page_format is PageFormat.CUSTOM:
            width, height = self.custom_width_mm, self.custom_height_mm
        else:
            width, height = PAGE_FORMATS[self.page_format]
        if self.orientation is Orientation.LANDSCAPE:
            return height, width
        return width, height


DEFAULT_PAGE_CONFIG = PageConfiguration()


@dataclass(frozen=True)
class NumberSeriesConfig:
    start_number: int = 10000
    end_number: int = 14000
    prefix: str = ""
    suffix: str = ""
    padding_length: int = 0
    qr_number_only: bool = True
    include_in_qr: bool = True
    include_in_name: bool = False

    @property
    def is_valid_range(self) -> bool:
        return self.start_number <= self.end_number and self.start_number >= 0

    @property
    def count(self) -> int:
        return max(0, self.end_number - self.start_number + 1)


__all__ = [
    "DEFAULT_DIMENSIONS",
    "DEFAULT_PAGE_CONFIG",
    "InvalidConfigurationError",
    "Margins",
    "NumberSeriesConfig",
    "Orientation",
    "PAGE_FORMATS",
    "PageConfiguration",
    "PageFormat",
    "PixelLayout",
    "Quality",
    "Region",
    "Size",
    "Spacing",
    "StickerDimensions",
    "StickerRecord",
]
