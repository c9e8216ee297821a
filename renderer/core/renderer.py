"""Pillow rasterizer for a template filled with one card's data."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import qrcode
from PIL import Image, ImageColor, ImageDraw, ImageFilter

from editor.core.autofit import LINE_HEIGHT, Measurer, compute_autofit
from editor.core.fonts import load_font
from editor.core.models import (
    CARD_HEIGHT,
    CARD_WIDTH,
    FOLD_LINE_Y,
    Element,
    ElementKind,
    ElementStyle,
    ErrorCorrection,
    Frame,
    FrameKind,
    LineStyle,
    Template,
    TextAlign,
    VerticalAlign,
)
from renderer.core.image_loader import ImageLoader
from renderer.core.paginator import mm_to_print_px
from renderer.core.records import CardRecord, label_text, resolve

logger = logging.getLogger(__name__)

CSS_DPI = 96
FOLD_LINE_COLOR = "#94a3b8"
BADGE_COLOR = "#1e293b"
BADGE_TEXT_COLOR = "#ffffff"

QR_ERROR_LEVELS = {
    ErrorCorrection.L: qrcode.constants.ERROR_CORRECT_L,
    ErrorCorrection.M: qrcode.constants.ERROR_CORRECT_M,
    ErrorCorrection.Q: qrcode.constants.ERROR_CORRECT_Q,
    ErrorCorrection.H: qrcode.constants.ERROR_CORRECT_H,
}

RGBA = Tuple[int, int, int, int]


def parse_color(value: Optional[str], opacity: float = 1.0) -> Optional[RGBA]:
    """RGBA tuple for a CSS colour; None for empty or transparent."""
    if not value or value == "transparent":
        return None
    try:
        rgb = ImageColor.getrgb(value)
    except ValueError:
        logger.warning("Unknown colour '%s' ignored", value)
        return None
    alpha = rgb[3] if len(rgb) == 4 else 255
    return rgb[0], rgb[1], rgb[2], int(round(alpha * max(0.0, min(opacity, 1.0))))


@dataclass(frozen=True)
class TextStyle:
    color: str
    font_family: str
    bold: bool


class CardRenderer:
    """Draws frames by z-order, then elements in list order.

    Back-side shapes are drawn on their own tile and rotated 180 degrees
    about their centre, the same rule the editor uses.
    """

    def __init__(
        self,
        template: Template,
        dpi: int = 300,
        image_loader: Optional[ImageLoader] = None,
        show_fold_line: Optional[bool] = None,
        measure: Optional[Measurer] = None,
    ):
        self.template = template
        self.dpi = dpi
        self.image_loader = image_loader or ImageLoader()
        self.show_fold_line = template.settings.show_fold_line if show_fold_line is None else show_fold_line
        self.measure = measure

    # ------------------------------------------------------------------
    def px(self, mm: float) -> int:
        return mm_to_print_px(mm, self.dpi)

    def css_px(self, value: float) -> float:
        """CSS pixels (96 dpi) to output pixels."""
        return value * self.dpi / CSS_DPI

    @property
    def size(self) -> Tuple[int, int]:
        return self.px(CARD_WIDTH), self.px(CARD_HEIGHT)

    # ------------------------------------------------------------------
    def render(self, record: CardRecord) -> Image.Image:
        settings = self.template.settings
        background = "#ffffff"
        if settings.unified_colors is not None:
            background = settings.unified_colors.background_color
        card = Image.new("RGBA", self.size, parse_color(background) or (255, 255, 255, 0))

        for frame in self.template.sorted_frames():
            self._draw_frame(card, frame)

        for element in self.template.elements:
            self._draw_element(card, element, record)

        if self.show_fold_line:
            y = self.px(FOLD_LINE_Y)
            draw = ImageDraw.Draw(card)
            dashed_line(draw, (0, y), (card.width, y), parse_color(FOLD_LINE_COLOR), max(1, self.px(0.2)), self.px(1.5))

        return card

    # ------------------------------------------------------------------
    def _composite(self, card: Image.Image, tile: Image.Image, x: int, y: int, rotate: bool) -> None:
        if rotate:
            tile = tile.rotate(180)
        if x < 0 or y < 0:
            tile = tile.crop((max(-x, 0), max(-y, 0), tile.width, tile.height))
            x, y = max(x, 0), max(y, 0)
        if tile.width <= 0 or tile.height <= 0 or x >= card.width or y >= card.height:
            return
        card.alpha_composite(tile, (x, y))

    def _tile_size(self, shape) -> Tuple[int, int]:
        return max(self.px(shape.size.width), 1), max(self.px(shape.size.height), 1)

    # ------------------------------------------------------------------
    # Frames
    # ------------------------------------------------------------------
    def _draw_frame(self, card: Image.Image, frame: Frame) -> None:
        style = frame.style
        stroke = parse_color(style.stroke_color, style.opacity)
        stroke_width = max(int(round(self.css_px(style.stroke_width))), 0)

        if frame.is_line:
            if frame.line_start is None or frame.line_end is None:
                return
            start = (self.px(frame.line_start.x), self.px(frame.line_start.y))
            end = (self.px(frame.line_end.x), self.px(frame.line_end.y))
            draw = ImageDraw.Draw(card)
            width = max(stroke_width, 1)
            if style.line_style is LineStyle.SOLID:
                draw.line([start, end], fill=stroke, width=width)
            else:
                dash = width * (4 if style.line_style is LineStyle.DASHED else 1)
                dashed_line(draw, start, end, stroke, width, dash)
            return

        w, h = self._tile_size(frame)
        tile = Image.new("RGBA", (w, h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(tile)
        fill = parse_color(style.fill_color, style.opacity)
        box = (0, 0, w - 1, h - 1)

        if frame.kind is FrameKind.RECTANGLE:
            draw.rectangle(box, fill=fill, outline=stroke, width=stroke_width)
        elif frame.kind is FrameKind.ROUNDED_RECTANGLE:
            radius = self.px(style.border_radius or 0)
            draw.rounded_rectangle(box, radius=radius, fill=fill, outline=stroke, width=stroke_width)
        elif frame.kind is FrameKind.CIRCLE:
            draw.ellipse(box, fill=fill, outline=stroke, width=stroke_width)
        elif frame.kind is FrameKind.TEXT:
            text_style = TextStyle(
                color=style.color or "#000000",
                font_family=frame.font_family or "Arial, sans-serif",
                bold=False,
            )
            self._draw_text_block(tile, frame.text or "", "custom", style.font_size or 12, text_style,
                                  TextAlign.LEFT, VerticalAlign.MIDDLE, style.opacity)

        self._composite(card, tile, self.px(frame.position.x), self.px(frame.position.y), frame.auto_rotate)

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------
    def _text_style(self, element: Element, style: ElementStyle, for_label: bool = False) -> TextStyle:
        settings = self.template.settings
        color = style.color
        family = style.font_family
        bold = style.font_weight in ("bold", "700", "800", "900")
        if element.is_custom:
            return TextStyle(color, family, bold)
        if settings.unified_colors is not None:
            colors = settings.unified_colors
            color = colors.data_label_color if for_label else colors.content_color
        if settings.unified_fonts is not None:
            preset = settings.unified_fonts.data_label if for_label else settings.unified_fonts.content
            family = preset.font_family
            bold = preset.font_weight in ("bold", "700", "800", "900")
        return TextStyle(color, family, bold)

    def _draw_element(self, card: Image.Image, element: Element, record: CardRecord) -> None:
        style = element.style or ElementStyle()
        w, h = self._tile_size(element)
        tile = Image.new("RGBA", (w, h), (0, 0, 0, 0))
        self._draw_box(tile, style)

        value = resolve(element.data_binding, record, element.custom_text)
        if element.kind is ElementKind.TEXT:
            self._draw_text_block(tile, value, element.data_binding, style.font_size,
                                  self._text_style(element, style), style.text_align,
                                  style.vertical_align, style.opacity, style)
        elif element.kind is ElementKind.BADGE:
            self._draw_badges(tile, record, style)
        elif element.kind is ElementKind.IMAGE:
            self._draw_image(tile, element)
        elif element.kind is ElementKind.QRCODE:
            self._draw_qr(tile, element, value)

        x, y = self.px(element.position.x), self.px(element.position.y)
        if element.label is not None and element.label.show:
            tile, y = self._with_label(tile, element, style, y)

        self._shadow(card, style, x, y, w, h)
        self._composite(card, tile, x, y, element.auto_rotate)

    def _with_label(self, tile: Image.Image, element: Element, style: ElementStyle, y: int):
        label = element.label
        font_size = label.font_size or max(style.font_size * 0.7, 6)
        label_h = int(math.ceil(self.css_px(font_size) * LINE_HEIGHT))
        text_style = self._text_style(element, style, for_label=True)
        if label.color and (element.is_custom or self.template.settings.unified_colors is None):
            text_style = TextStyle(label.color, text_style.font_family, text_style.bold)

        strip = Image.new("RGBA", (tile.width, label_h), (0, 0, 0, 0))
        self._draw_text_block(strip, label_text(element.data_binding, label.text), "label", font_size,
                              text_style, TextAlign.LEFT, VerticalAlign.BOTTOM, style.opacity)
        combined = Image.new("RGBA", (tile.width, tile.height + label_h), (0, 0, 0, 0))
        combined.alpha_composite(strip, (0, 0))
        combined.alpha_composite(tile, (0, label_h))
        # Rotated back-side tiles show the caption below the box instead.
        return combined, (y if element.auto_rotate else y - label_h)

    def _draw_box(self, tile: Image.Image, style: ElementStyle) -> None:
        draw = ImageDraw.Draw(tile)
        w, h = tile.size
        radius = 0
        if style.border_radius is not None:
            radius = self.px(max(style.border_radius.top_left, style.border_radius.top_right,
                                 style.border_radius.bottom_right, style.border_radius.bottom_left))
        fill = parse_color(style.background_color, style.opacity)
        if fill is not None:
            draw.rounded_rectangle((0, 0, w - 1, h - 1), radius=radius, fill=fill)

        for side, border in style.borders.items():
            if border is None or border.width <= 0:
                continue
            width = max(self.px(border.width), 1)
            color = parse_color(border.color, style.opacity)
            if side == "top":
                points = ((0, width // 2), (w - 1, width // 2))
            elif side == "bottom":
                points = ((0, h - 1 - width // 2), (w - 1, h - 1 - width // 2))
            elif side == "left":
                points = ((width // 2, 0), (width // 2, h - 1))
            else:
                points = ((w - 1 - width // 2, 0), (w - 1 - width // 2, h - 1))
            if border.style is LineStyle.SOLID:
                draw.line(points, fill=color, width=width)
            else:
                dash = width * (4 if border.style is LineStyle.DASHED else 1)
                dashed_line(draw, points[0], points[1], color, width, dash)

    def _shadow(self, card: Image.Image, style: ElementStyle, x: int, y: int, w: int, h: int) -> None:
        if style.shadow is None or style.background_color is None:
            return
        shadow = style.shadow
        blur = max(self.px(shadow.blur), 0)
        pad = blur * 2
        layer = Image.new("RGBA", (w + pad * 2, h + pad * 2), (0, 0, 0, 0))
        ImageDraw.Draw(layer).rectangle((pad, pad, pad + w - 1, pad + h - 1),
                                        fill=parse_color(shadow.color, 0.35 * style.opacity))
        if blur:
            layer = layer.filter(ImageFilter.GaussianBlur(blur))
        self._composite(card, layer, x - pad + self.px(shadow.offset_x), y - pad + self.px(shadow.offset_y), False)

    def _draw_text_block(
        self,
        tile: Image.Image,
        text: str,
        data_binding: str,
        font_size: float,
        text_style: TextStyle,
        align: TextAlign,
        valign: VerticalAlign,
        opacity: float = 1.0,
        style: Optional[ElementStyle] = None,
    ) -> None:
        if not text:
            return
        font_px = self.css_px(font_size)
        fit = compute_autofit(text, data_binding, font_px, tile.width, tile.height,
                              text_style.font_family, self.measure)
        scale_x = style.scale_x if style is not None and style.scale_x is not None else fit.scale_x
        scale_y = style.scale_y if style is not None and style.scale_y is not None else fit.scale_y

        font = load_font(text_style.font_family, round(font_px), text_style.bold)
        line_h = font_px * LINE_HEIGHT
        natural_w = max(int(math.ceil(fit.natural_width)), 1)
        natural_h = max(int(math.ceil(line_h * len(fit.lines))), 1)
        block = Image.new("RGBA", (natural_w, natural_h), (0, 0, 0, 0))
        draw = ImageDraw.Draw(block)
        color = parse_color(text_style.color, opacity)
        for index, line in enumerate(fit.lines):
            line_w = font.getlength(line)
            if align is TextAlign.RIGHT:
                lx = natural_w - line_w
            elif align is TextAlign.CENTER:
                lx = (natural_w - line_w) / 2
            else:
                lx = 0
            top = index * line_h + (line_h - font_px) / 2
            draw.text((lx, top), line, font=font, fill=color)

        scaled_w = max(int(round(natural_w * scale_x)), 1)
        scaled_h = max(int(round(natural_h * scale_y)), 1)
        if (scaled_w, scaled_h) != block.size:
            block = block.resize((scaled_w, scaled_h), Image.LANCZOS)

        if align is TextAlign.RIGHT:
            x = tile.width - scaled_w
        elif align is TextAlign.CENTER:
            x = (tile.width - scaled_w) // 2
        else:
            x = 0
        if valign is VerticalAlign.BOTTOM:
            y = tile.height - scaled_h
        elif valign is VerticalAlign.TOP:
            y = 0
        else:
            y = (tile.height - scaled_h) // 2

        # Overflow past the minimum compression is clipped by the box.
        clip = block.crop((max(-x, 0), max(-y, 0), min(scaled_w, tile.width - x), min(scaled_h, tile.height - y)))
        if clip.width > 0 and clip.height > 0:
            tile.alpha_composite(clip, (max(x, 0), max(y, 0)))

    def _draw_badges(self, tile: Image.Image, record: CardRecord, style: ElementStyle) -> None:
        if not record.badges:
            return
        draw = ImageDraw.Draw(tile)
        font_px = self.css_px(style.font_size)
        font = load_font(style.font_family, round(font_px), True)
        gap = self.px(1)
        pad = self.px(1)
        fill = parse_color(style.background_color or BADGE_COLOR, style.opacity)
        text_color = parse_color(BADGE_TEXT_COLOR, style.opacity)
        x = 0
        for badge in record.badges:
            width = int(font.getlength(badge)) + pad * 2
            if x + width > tile.width:
                break
            draw.rounded_rectangle((x, 0, x + width, tile.height - 1), radius=tile.height // 2, fill=fill)
            draw.text((x + pad, (tile.height - font_px) / 2), badge, font=font, fill=text_color)
            x += width + gap

    def _draw_image(self, tile: Image.Image, element: Element) -> None:
        settings = element.image_settings
        if settings is None or not settings.src:
            return
        img = self.image_loader.load_scaled(settings.src, tile.width, tile.height, settings.crop)
        if img is None:
            return
        tile.alpha_composite(img, (0, 0))

    def _draw_qr(self, tile: Image.Image, element: Element, value: str) -> None:
        if not value or element.qr_settings is None:
            return
        settings = element.qr_settings
        qr = qrcode.QRCode(
            error_correction=QR_ERROR_LEVELS[settings.error_correction_level],
            box_size=10,
            border=settings.margin,
        )
        qr.add_data(value)
        qr.make(fit=True)
        img = qr.make_image(fill_color=settings.color, back_color=settings.background_color).convert("RGBA")
        side = min(tile.width, tile.height)
        img = img.resize((side, side), Image.NEAREST)
        tile.alpha_composite(img, ((tile.width - side) // 2, (tile.height - side) // 2))


def dashed_line(draw: ImageDraw.ImageDraw, start, end, fill, width: int, dash: int, gap: Optional[int] = None) -> None:
    gap = dash if gap is None else gap
    x1, y1 = start
    x2, y2 = end
    length = math.hypot(x2 - x1, y2 - y1)
    if length == 0 or dash <= 0:
        return
    ux, uy = (x2 - x1) / length, (y2 - y1) / length
    pos = 0.0
    while pos < length:
        seg_end = min(pos + dash, length)
        draw.line([(x1 + ux * pos, y1 + uy * pos), (x1 + ux * seg_end, y1 + uy * seg_end)], fill=fill, width=width)
        pos = seg_end + gap
