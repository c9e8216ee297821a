"""Constructors for new elements, frames and the built-in default template."""

from __future__ import annotations

import math
import secrets
import time
from dataclasses import replace
from typing import Optional

from editor.core.models import (
    DEFAULT_FONT_FAMILY,
    Element,
    ElementKind,
    ElementStyle,
    Frame,
    FrameKind,
    FrameStyle,
    ImageSettings,
    Point,
    QRSettings,
    Size,
    Template,
    TemplateSettings,
    TextAlign,
)

SHOP_NAME = "Nokisaki Records"
CUSTOM_TEXT_PLACEHOLDER = "Custom text"
FRAME_TEXT_PLACEHOLDER = "Text"
FRAME_GRID_MM = 2.0


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_id(prefix: str) -> str:
    return f"{prefix}-{now_ms()}-{secrets.token_hex(4)}"


def _snap_to_frame_grid(value: float) -> float:
    return math.floor(value / FRAME_GRID_MM + 0.5) * FRAME_GRID_MM


def create_element(kind: ElementKind, data_binding: str, position: Point, element_id: Optional[str] = None) -> Element:
    element = Element(
        id=element_id or generate_id(kind.value),
        kind=kind,
        data_binding=data_binding,
        position=position,
        size=Size(30, 8),
        style=ElementStyle(),
    )

    if kind is ElementKind.TEXT:
        align = TextAlign.RIGHT if data_binding == "price" else TextAlign.LEFT
        element = replace(element, style=replace(element.style, text_align=align))
        if data_binding == "custom":
            element = replace(element, custom_text=CUSTOM_TEXT_PLACEHOLDER)
    elif kind is ElementKind.IMAGE:
        element = replace(element, size=Size(40, 30), image_settings=ImageSettings())
    elif kind is ElementKind.QRCODE:
        element = replace(element, size=Size(20, 20), qr_settings=QRSettings())
    elif kind is ElementKind.BADGE:
        element = replace(element, size=Size(20, 6))

    return element


def create_frame(kind: FrameKind, position: Point, frame_id: Optional[str] = None) -> Frame:
    snapped = Point(_snap_to_frame_grid(position.x), _snap_to_frame_grid(position.y))
    frame = Frame(
        id=frame_id or generate_id(f"frame-{kind.value}"),
        kind=kind,
        position=snapped,
        size=Size(30, 20),
        style=FrameStyle(stroke_color="#000000", stroke_width=1, opacity=1),
        z_index=1,
    )

    if kind is FrameKind.RECTANGLE:
        frame = replace(frame, style=replace(frame.style, fill_color="transparent"))
    elif kind is FrameKind.ROUNDED_RECTANGLE:
        frame = replace(frame, style=replace(frame.style, fill_color="transparent", border_radius=5))
    elif kind is FrameKind.CIRCLE:
        frame = replace(frame, size=Size(20, 20), style=replace(frame.style, fill_color="transparent"))
    elif kind is FrameKind.LINE:
        frame = frame.with_line(snapped, snapped.translated(30, 0))
    elif kind is FrameKind.TEXT:
        frame = replace(
            frame,
            size=Size(40, 8),
            text=FRAME_TEXT_PLACEHOLDER,
            font_family=DEFAULT_FONT_FAMILY,
            style=replace(frame.style, font_size=12, color="#000000"),
        )

    return frame


def _text(element_id: str, binding: str, x: float, y: float, w: float, h: float, **style) -> Element:
    return Element(
        id=element_id,
        kind=ElementKind.TEXT,
        data_binding=binding,
        position=Point(x, y),
        size=Size(w, h),
        style=ElementStyle(**style),
    )


def create_default_template(template_id: Optional[str] = None) -> Template:
    """Return the stock layout: shop name on the back, release data on the front."""
    shop_name = replace(
        _text("backside-shop-name", "custom", 32, 8, 40, 6, font_size=14),
        custom_text=SHOP_NAME,
    )
    elements = (
        shop_name,
        _text("artist", "artist", 6, 20, 94, 8, font_size=20),
        _text("title", "title", 6, 32, 94, 10, font_size=18, color="#334155"),
        _text("label", "label", 6, 44, 38, 6, font_size=12, color="#666666"),
        _text("country-year", "countryYear", 50, 44, 30, 6, font_size=12, color="#666666"),
        _text("condition", "condition", 84, 44, 16, 6, font_size=14),
        _text("genre", "genre", 6, 52, 94, 6, font_size=11, color="#333333"),
        _text("price", "price", 6, 60, 30, 8, font_size=20, text_align=TextAlign.RIGHT),
    )
    return Template(
        id=template_id or f"template-{now_ms()}",
        name="Default template",
        elements=elements,
        frames=(),
        settings=TemplateSettings(),
    )


def create_empty_template(name: str = "Untitled", template_id: Optional[str] = None) -> Template:
    return Template(id=template_id or f"template-{now_ms()}", name=name)
