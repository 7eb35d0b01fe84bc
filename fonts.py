# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false
# pyright: reportUnknownArgumentType=false, reportAttributeAccessIssue=false
# pyright: reportMissingImports=false
# pyright: reportMissingTypeStubs=false

"""Font resolution for sticker rendering.

Families map either to ReportLab's built-in faces or to a variable font file in
``fonts/`` whose weight instances are cut with fontTools and registered lazily.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
import os
import re
from typing import Union

from fontTools.ttLib import TTFont as VariableTTFont
from fontTools.varLib import instancer
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont as ReportLabTTFont

FONTS_DIR = Path(__file__).resolve().parent / "fonts"
DEFAULT_FAMILY = "Helvetica"


@dataclass(frozen=True)
class BuiltinFont:
    family_name: str
    faces: dict[int, str]


@dataclass(frozen=True)
class LocalVariableFont:
    family_name: str
    filename: str


FontSource = Union[BuiltinFont, LocalVariableFont]


def _font_key(name: str) -> str:
    return " ".join(name.strip().lower().split())


FONT_SOURCES: dict[str, FontSource] = {
    _font_key("Helvetica"): BuiltinFont(
        family_name="Helvetica",
        faces={400: "Helvetica", 700: "Helvetica-Bold"},
    ),
    _font_key("Times"): BuiltinFont(
        family_name="Times",
        faces={400: "Times-Roman", 700: "Times-Bold"},
    ),
    _font_key("Inter"): LocalVariableFont(
        family_name="Inter",
        filename="InterVariable.ttf",
    ),
}


@dataclass(frozen=True)
class FontSpec:
    """Desired weight and size relative to the contact base font size."""

    weight: float
    scale: float = 1.0


@dataclass(frozen=True)
class FontSettings:
    """Resolved ReportLab font name with its relative scale."""

    font_name: str
    scale: float

    def size_for(self, base_size: float) -> float:
        return base_size * self.scale


@dataclass(frozen=True)
class FontConfig:
    """Fonts used by one sticker: contact lines and the logo placeholder."""

    phone: FontSettings
    email: FontSettings
    website: FontSettings
    placeholder: FontSettings


class VariableFontManager:
    """Instantiate static weight variants from a variable font file."""

    def __init__(self, family: str, font_path: Path) -> None:
        self.family = family
        self.font_path = font_path
        self._font_bytes = font_path.read_bytes()
        self._weight_min, self._weight_max = self._discover_weight_axis()
        self._registered: dict[str, str] = {}

    def _discover_weight_axis(self) -> tuple[float, float]:
        font = VariableTTFont(BytesIO(self._font_bytes))
        try:
            axis = next(ax for ax in font["fvar"].axes if ax.axisTag == "wght")
        except (KeyError, StopIteration) as exc:
            raise RuntimeError(
                f"Variable font '{self.font_path}' does not expose a wght axis."
            ) from exc
        return float(axis.minValue), float(axis.maxValue)

    def font_name_for_weight(self, weight: float) -> str:
        weight = min(max(float(weight), self._weight_min), self._weight_max)
        key = f"{weight:.1f}"
        cached = self._registered.get(key)
        if cached:
            return cached

        font_name = f"{self.family}-w{int(round(weight))}"
        font = VariableTTFont(BytesIO(self._font_bytes))
        instancer.instantiateVariableFont(font, {"wght": weight}, inplace=True)
        self._rename(font, weight)
        buffer = BytesIO()
        font.save(buffer)
        buffer.seek(0)
        pdfmetrics.registerFont(ReportLabTTFont(font_name, buffer))
        self._registered[key] = font_name
        return font_name

    def _rename(self, font: VariableTTFont, weight: float) -> None:
        """Give each instance its own PostScript name."""
        nm = font["name"]
        weight_label = str(int(round(weight)))
        ps_name = re.sub(
            r"[^A-Za-z0-9-]", "", f"{self.family.replace(' ', '')}-W{weight_label}"
        )[:63]
        for plat, enc, lang in ((3, 1, 0x409), (1, 0, 0)):
            nm.setName(ps_name, 6, plat, enc, lang)
            nm.setName(f"{self.family} {weight_label}", 4, plat, enc, lang)
            nm.setName(self.family, 1, plat, enc, lang)
            nm.setName(weight_label, 2, plat, enc, lang)


class FontRegistry:
    def __init__(self) -> None:
        self._variable_managers: dict[str, VariableFontManager] = {}

    def get_font_name(self, family_key: str, weight: float) -> str:
        info = FONT_SOURCES.get(family_key)
        if info is None:
            available = ", ".join(sorted(FONT_SOURCES))
            raise SystemExit(
                f"Unknown font family '{family_key}'. Available: {available}")

        if isinstance(info, LocalVariableFont):
            return self._get_variable_font_name(info, weight)
        return self._get_builtin_font_name(info, weight)

    def _get_variable_font_name(
        self, info: LocalVariableFont, weight: float
    ) -> str:
        key = _font_key(info.family_name)
        manager = self._variable_managers.get(key)
        if manager is None:
            destination = FONTS_DIR / info.filename
            if not destination.exists():
                raise SystemExit(
                    f"Font file '{destination}' for family '{info.family_name}' is missing."
                )
            manager = VariableFontManager(info.family_name, destination)
            self._variable_managers[key] = manager
        return manager.font_name_for_weight(weight)

    def _get_builtin_font_name(self, info: BuiltinFont, weight: float) -> str:
        # pick the closest available face
        closest = min(info.faces, key=lambda w: abs(w - weight))
        return info.faces[closest]


_REGISTRY = FontRegistry()

PHONE_SPEC = FontSpec(weight=700, scale=1.0)
EMAIL_SPEC = FontSpec(weight=400, scale=0.8)
WEBSITE_SPEC = FontSpec(weight=400, scale=0.7)
PLACEHOLDER_SPEC = FontSpec(weight=400)


def build_font_config(
    family: str | None = None,
    phone_spec: FontSpec = PHONE_SPEC,
    email_spec: FontSpec = EMAIL_SPEC,
    website_spec: FontSpec = WEBSITE_SPEC,
    placeholder_spec: FontSpec = PLACEHOLDER_SPEC,
) -> FontConfig:
    """Register the family's fonts and return ready-to-use settings.

    ``family`` defaults to ``STICKER_FONT_FAMILY`` or Helvetica.
    """

    family = family or os.getenv("STICKER_FONT_FAMILY") or DEFAULT_FAMILY
    key = _font_key(family)

    def _settings(spec: FontSpec) -> FontSettings:
        return FontSettings(
            font_name=_REGISTRY.get_font_name(key, spec.weight),
            scale=spec.scale,
        )

    return FontConfig(
        phone=_settings(phone_spec),
        email=_settings(email_spec),
        website=_settings(website_spec),
        placeholder=_settings(placeholder_spec),
    )


__all__ = [
    "FontConfig",
    "FontSettings",
    "FontSpec",
    "build_font_config",
]
