"""Dataclasses that describe a POP card template: elements, frames and settings.

All geometry is stored in millimetres with the origin at the top-left corner
of the card. Instances are frozen; every edit produces a new snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union, get_args, get_origin, get_type_hints

CARD_WIDTH = 105.0
CARD_HEIGHT = 74.0
FOLD_LINE_Y = 15.0
MM_TO_PX = 3.7795275591

MIN_SIZE = 5.0
MIN_LINE_SIZE = 1.0

DEFAULT_FONT_FAMILY = "Arial, sans-serif"


class ElementKind(str, Enum):
    TEXT = "text"
    BADGE = "badge"
    IMAGE = "image"
    SHAPE = "shape"
    QRCODE = "qrcode"


class FrameKind(str, Enum):
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ROUNDED_RECTANGLE = "roundedRectangle"
    LINE = "line"
    TEXT = "text"


class TextAlign(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class VerticalAlign(str, Enum):
    TOP = "top"
    MIDDLE = "middle"
    BOTTOM = "bottom"


class LineStyle(str, Enum):
    SOLID = "solid"
    DASHED = "dashed"
    DOTTED = "dotted"


class ErrorCorrection(str, Enum):
    L = "L"
    M = "M"
    Q = "Q"
    H = "H"


def is_in_back_side(y: float) -> bool:
    """True when a top edge at ``y`` lies above the fold line."""
    return y < FOLD_LINE_Y


# ----------------------------------------------------------------------
# camelCase JSON helpers
# ----------------------------------------------------------------------
def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _encode(value: Any) -> Any:
    if isinstance(value, JsonModel):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


def _decode(hint: Any, value: Any) -> Any:
    if value is None:
        return None

    origin = get_origin(hint)
    if origin is Union:
        options = [arg for arg in get_args(hint) if arg is not type(None)]
        return _decode(options[0], value)
    if origin in (tuple, Tuple):
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"Expected a list, got {type(value).__name__}")
        item_hint = get_args(hint)[0]
        return tuple(_decode(item_hint, item) for item in value)
    if origin in (dict, Dict):
        if not isinstance(value, dict):
            raise ValueError(f"Expected an object, got {type(value).__name__}")
        return dict(value)

    if isinstance(hint, type):
        if is_dataclass(hint):
            if not isinstance(value, dict):
                raise ValueError(f"Expected an object for {hint.__name__}")
            return hint.from_dict(value)
        if issubclass(hint, Enum):
            return hint(value)
        if hint is bool:
            if not isinstance(value, bool):
                raise ValueError(f"Expected true or false, got {value!r}")
            return value
        if hint in (int, float):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Expected a number, got {value!r}")
            return hint(value)
        if hint is str:
            if not isinstance(value, str):
                raise ValueError(f"Expected a string, got {value!r}")
            return value
    return value


class JsonModel:
    """Mixin giving frozen dataclasses a camelCase ``to_dict``/``from_dict``."""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            data[camel_case(f.name)] = _encode(value)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        hints = get_type_hints(cls)
        kwargs = {}
        for f in fields(cls):
            key = camel_case(f.name)
            if key in data:
                kwargs[f.name] = _decode(hints[f.name], data[key])
        return cls(**kwargs)


# ----------------------------------------------------------------------
# Geometry primitives
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Point(JsonModel):
    x: float = 0.0
    y: float = 0.0

    def translated(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)


@dataclass(frozen=True)
class Size(JsonModel):
    width: float = 0.0
    height: float = 0.0


def line_bounds(start: Point, end: Point) -> Tuple[Point, Size]:
    """Return the bounding box of a line, each side at least 1mm."""
    position = Point(min(start.x, end.x), min(start.y, end.y))
    size = Size(
        max(abs(end.x - start.x), MIN_LINE_SIZE),
        max(abs(end.y - start.y), MIN_LINE_SIZE),
    )
    return position, size


def circle_bounds(position: Point, size: Size) -> Tuple[Point, Size]:
    """Square a circle box around its own center, each side at least 5mm."""
    width, height = max(size.width, MIN_SIZE), max(size.height, MIN_SIZE)
    if width == height:
        return position, Size(width, height)
    side = max(width, height)
    center_x = position.x + width / 2
    center_y = position.y + height / 2
    return Point(center_x - side / 2, center_y - side / 2), Size(side, side)


# ----------------------------------------------------------------------
# Styles
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class BorderStyle(JsonModel):
    color: str = "#000000"
    width: float = 0.0
    style: LineStyle = LineStyle.SOLID


@dataclass(frozen=True)
class CornerRadii(JsonModel):
    top_left: float = 0.0
    top_right: float = 0.0
    bottom_right: float = 0.0
    bottom_left: float = 0.0


@dataclass(frozen=True)
class ShadowStyle(JsonModel):
    color: str = "#000000"
    offset_x: float = 0.5
    offset_y: float = 0.5
    blur: float = 1.0


@dataclass(frozen=True)
class ElementStyle(JsonModel):
    font_size: float = 12.0
    font_family: str = DEFAULT_FONT_FAMILY
    font_weight: str = "normal"
    color: str = "#1e293b"
    background_color: Optional[str] = None
    opacity: float = 1.0
    text_align: TextAlign = TextAlign.LEFT
    vertical_align: VerticalAlign = VerticalAlign.MIDDLE
    border_top: Optional[BorderStyle] = None
    border_right: Optional[BorderStyle] = None
    border_bottom: Optional[BorderStyle] = None
    border_left: Optional[BorderStyle] = None
    border_radius: Optional[CornerRadii] = None
    shadow: Optional[ShadowStyle] = None
    scale_x: Optional[float] = None
    scale_y: Optional[float] = None

    @property
    def borders(self) -> Dict[str, Optional[BorderStyle]]:
        return {
            "top": self.border_top,
            "right": self.border_right,
            "bottom": self.border_bottom,
            "left": self.border_left,
        }


@dataclass(frozen=True)
class FrameStyle(JsonModel):
    fill_color: Optional[str] = None
    stroke_color: str = "#000000"
    stroke_width: float = 1.0
    border_radius: Optional[float] = None
    font_size: Optional[float] = None
    color: Optional[str] = None
    opacity: float = 1.0
    line_style: LineStyle = LineStyle.SOLID


@dataclass(frozen=True)
class LabelSettings(JsonModel):
    show: bool = False
    text: Optional[str] = None
    font_size: Optional[float] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class QRSettings(JsonModel):
    error_correction_level: ErrorCorrection = ErrorCorrection.M
    margin: int = 2
    color: str = "#000000"
    background_color: str = "#ffffff"


@dataclass(frozen=True)
class CropRect(JsonModel):
    """Crop window relative to the original bitmap, every value in [0, 1]."""

    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0

    def __post_init__(self):
        for name in ("x", "y", "width", "height"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Crop {name} must be within [0, 1], got {value}")
        if self.x + self.width > 1.0 + 1e-9 or self.y + self.height > 1.0 + 1e-9:
            raise ValueError("Crop rectangle exceeds the source image")


@dataclass(frozen=True)
class ImageSettings(JsonModel):
    src: str = ""
    file_name: Optional[str] = None
    original_width: int = 0
    original_height: int = 0
    crop: Optional[CropRect] = None

    @property
    def aspect_ratio(self) -> Optional[float]:
        if self.original_width > 0 and self.original_height > 0:
            return self.original_width / self.original_height
        return None


@dataclass(frozen=True)
class FontPreset(JsonModel):
    font_family: str = DEFAULT_FONT_FAMILY
    font_weight: str = "normal"
    font_style: str = "normal"


@dataclass(frozen=True)
class UnifiedColors(JsonModel):
    data_label_color: str = "#666666"
    content_color: str = "#1e293b"
    background_color: str = "#ffffff"


@dataclass(frozen=True)
class UnifiedFonts(JsonModel):
    data_label: FontPreset = field(default_factory=FontPreset)
    content: FontPreset = field(default_factory=FontPreset)


@dataclass(frozen=True)
class TemplateSettings(JsonModel):
    grid_size: float = 2.0
    snap_to_grid: bool = True
    show_guides: bool = True
    show_fold_line: bool = True
    unified_colors: Optional[UnifiedColors] = None
    unified_fonts: Optional[UnifiedFonts] = None


# ----------------------------------------------------------------------
# Shapes
# ----------------------------------------------------------------------
class _Placed:
    """Derived back-side state shared by elements and frames."""

    position: Point
    size: Size

    @property
    def center(self) -> Point:
        return Point(self.position.x + self.size.width / 2, self.position.y + self.size.height / 2)

    @property
    def is_back_side(self) -> bool:
        return self.center.y < FOLD_LINE_Y

    @property
    def auto_rotate(self) -> bool:
        return self.is_back_side

    def to_dict(self) -> Dict[str, Any]:
        data = JsonModel.to_dict(self)
        data["isBackSide"] = self.is_back_side
        data["autoRotate"] = self.auto_rotate
        return data


@dataclass(frozen=True)
class Element(_Placed, JsonModel):
    id: str
    kind: ElementKind
    data_binding: str
    position: Point
    size: Size
    style: Optional[ElementStyle] = None
    custom_text: Optional[str] = None
    label: Optional[LabelSettings] = None
    qr_settings: Optional[QRSettings] = None
    image_settings: Optional[ImageSettings] = None

    @property
    def is_custom(self) -> bool:
        return self.data_binding == "custom"


@dataclass(frozen=True)
class Frame(_Placed, JsonModel):
    id: str
    kind: FrameKind
    position: Point
    size: Size
    style: FrameStyle = field(default_factory=FrameStyle)
    z_index: int = 1
    line_start: Optional[Point] = None
    line_end: Optional[Point] = None
    text: Optional[str] = None
    font_family: Optional[str] = None

    @property
    def is_line(self) -> bool:
        return self.kind is FrameKind.LINE

    def with_line(self, start: Point, end: Point) -> "Frame":
        position, size = line_bounds(start, end)
        return replace(self, line_start=start, line_end=end, position=position, size=size)


Shape = Union[Element, Frame]


@dataclass(frozen=True)
class Template(JsonModel):
    id: str
    name: str
    elements: Tuple[Element, ...] = ()
    frames: Tuple[Frame, ...] = ()
    settings: TemplateSettings = field(default_factory=TemplateSettings)
    created_at: Optional[int] = None
    updated_at: Optional[int] = None

    def element_by_id(self, element_id: str) -> Optional[Element]:
        for element in self.elements:
            if element.id == element_id:
                return element
        return None

    def frame_by_id(self, frame_id: str) -> Optional[Frame]:
        for frame in self.frames:
            if frame.id == frame_id:
                return frame
        return None

    def shape_by_id(self, shape_id: str) -> Optional[Shape]:
        return self.element_by_id(shape_id) or self.frame_by_id(shape_id)

    def sorted_frames(self) -> Tuple[Frame, ...]:
        """Frames in paint order: ascending zIndex, list order for ties."""
        return tuple(sorted(self.frames, key=lambda frame: frame.z_index))

    def ids(self) -> Tuple[str, ...]:
        return tuple(e.id for e in self.elements) + tuple(f.id for f in self.frames)
