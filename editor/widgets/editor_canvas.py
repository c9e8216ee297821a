"""Interactive card canvas: paints the template and feeds input to the session."""

from __future__ import annotations

from typing import Optional, Tuple

from PySide6.QtCore import QPointF, QRectF, QSize, Qt, Signal
from PySide6.QtGui import QBrush, QColor, QFont, QFontMetricsF, QPainter, QPen, QPixmap
from PySide6.QtWidgets import QWidget

from editor.core.autofit import compute_autofit
from editor.core.geometry import ViewTransform, clamp
from editor.core.hit_testing import handle_points
from editor.core.models import (
    CARD_HEIGHT,
    CARD_WIDTH,
    FOLD_LINE_Y,
    Element,
    ElementKind,
    ElementStyle,
    Frame,
    FrameKind,
    LineStyle,
    TextAlign,
    VerticalAlign,
)
from editor.core.session import EditorSession
from renderer.core.records import SAMPLE_RECORD, CardRecord, label_text, resolve

PEN_STYLES = {
    LineStyle.SOLID: Qt.SolidLine,
    LineStyle.DASHED: Qt.DashLine,
    LineStyle.DOTTED: Qt.DotLine,
}

H_ALIGN = {
    TextAlign.LEFT: Qt.AlignLeft,
    TextAlign.CENTER: Qt.AlignHCenter,
    TextAlign.RIGHT: Qt.AlignRight,
}

V_ALIGN = {
    VerticalAlign.TOP: Qt.AlignTop,
    VerticalAlign.MIDDLE: Qt.AlignVCenter,
    VerticalAlign.BOTTOM: Qt.AlignBottom,
}

ARROW_STEPS = {
    Qt.Key_Left: (-1, 0),
    Qt.Key_Right: (1, 0),
    Qt.Key_Up: (0, -1),
    Qt.Key_Down: (0, 1),
}


def qcolor(value: Optional[str], fallback: str = "#000000") -> QColor:
    color = QColor(value or fallback)
    return color if color.isValid() else QColor(fallback)


class EditorCanvas(QWidget):
    selectionChanged = Signal(str)
    templateChanged = Signal()
    noticeRaised = Signal(str, str, str)

    CARD_MARGIN = 24
    HANDLE_SIZE = 8
    ZOOM_MIN = 0.5
    ZOOM_MAX = 6.0

    def __init__(self, session: EditorSession, record: CardRecord = SAMPLE_RECORD, parent=None):
        super().__init__(parent)
        self.session = session
        self.record = record
        self._pixmaps = {}

        session.subscribe(self._on_template_changed)
        session.subscribe_notices(self.noticeRaised.emit)

        self.setFocusPolicy(Qt.StrongFocus)
        self.setMouseTracking(True)
        self.set_zoom(session.view.zoom)

    # --------------------------------------------------------
    # View
    # --------------------------------------------------------
    @property
    def view(self) -> ViewTransform:
        return self.session.view

    def set_zoom(self, zoom: float) -> None:
        zoom = clamp(zoom, self.ZOOM_MIN, self.ZOOM_MAX)
        self.session.view = ViewTransform(zoom=zoom)
        self.setMinimumSize(self.sizeHint())
        self.updateGeometry()
        self.update()

    def sizeHint(self) -> QSize:
        w = self.view.mm_to_px(CARD_WIDTH) + 2 * self.CARD_MARGIN
        h = self.view.mm_to_px(CARD_HEIGHT) + 2 * self.CARD_MARGIN
        return QSize(int(w), int(h))

    def to_card_px(self, pos: QPointF) -> Tuple[float, float]:
        return pos.x() - self.CARD_MARGIN, pos.y() - self.CARD_MARGIN

    def _rect(self, shape) -> QRectF:
        v = self.view
        return QRectF(
            v.mm_to_px(shape.position.x),
            v.mm_to_px(shape.position.y),
            v.mm_to_px(shape.size.width),
            v.mm_to_px(shape.size.height),
        )

    def _on_template_changed(self, template) -> None:
        self.templateChanged.emit()
        self.update()

    # --------------------------------------------------------
    # Input handling
    # --------------------------------------------------------
    def handle_press(self, pos: QPointF) -> Optional[str]:
        self.setFocus()
        hit = self.session.press(self.to_card_px(pos))
        selected = hit.target_id if hit is not None else ""
        self.selectionChanged.emit(selected)
        self.update()
        return selected or None

    def handle_move(self, pos: QPointF, shift: bool = False) -> None:
        if not self.session.drag.is_dragging:
            return
        self.session.drag_to(self.to_card_px(pos), snap_angles=shift)
        self.update()

    def handle_release(self) -> bool:
        committed = self.session.release()
        self.update()
        return committed

    def handle_key(self, key, modifiers) -> bool:
        ctrl = bool(modifiers & Qt.ControlModifier)
        shift = bool(modifiers & Qt.ShiftModifier)

        if key == Qt.Key_Escape:
            if self.session.drag.is_dragging:
                self.session.cancel_drag()
                self.update()
            return True
        if ctrl and key == Qt.Key_Z:
            if shift:
                self.session.redo()
            else:
                self.session.undo()
            return True
        if ctrl and key == Qt.Key_Y:
            self.session.redo()
            return True
        if key in (Qt.Key_Delete, Qt.Key_Backspace):
            if self.session.delete_selected():
                self.selectionChanged.emit("")
            return True
        if key in ARROW_STEPS and not self.session.drag.is_dragging:
            dx, dy = ARROW_STEPS[key]
            self.session.nudge(dx, dy)
            return True
        return False

    def mousePressEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.handle_press(event.position())
        else:
            super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        self.handle_move(event.position(), bool(event.modifiers() & Qt.ShiftModifier))

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.LeftButton:
            self.handle_release()
        else:
            super().mouseReleaseEvent(event)

    def keyPressEvent(self, event):
        if not self.handle_key(event.key(), event.modifiers()):
            super().keyPressEvent(event)

    def wheelEvent(self, event):
        if not event.modifiers() & Qt.ControlModifier:
            super().wheelEvent(event)
            return
        factor = 1.1 if event.angleDelta().y() > 0 else 1 / 1.1
        self.set_zoom(self.view.zoom * factor)
        event.accept()

    # --------------------------------------------------------
    # Paint
    # --------------------------------------------------------
    def paintEvent(self, event):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.Antialiasing)
        painter.fillRect(self.rect(), QColor(226, 232, 240))
        painter.translate(self.CARD_MARGIN, self.CARD_MARGIN)

        template = self.session.template
        settings = template.settings
        v = self.view
        card_rect = QRectF(0, 0, v.mm_to_px(CARD_WIDTH), v.mm_to_px(CARD_HEIGHT))
        background = "#ffffff"
        if settings.unified_colors is not None:
            background = settings.unified_colors.background_color
        painter.fillRect(card_rect, qcolor(background, "#ffffff"))

        if settings.show_guides:
            self._paint_grid(painter, card_rect, settings.grid_size)

        preview = self.session.drag.preview_shape()
        for frame in template.sorted_frames():
            if preview is not None and preview.id == frame.id:
                frame = preview
            self._paint_frame(painter, frame)
        for element in template.elements:
            if preview is not None and preview.id == element.id:
                element = preview
            self._paint_element(painter, element)

        if settings.show_fold_line:
            pen = QPen(QColor(148, 163, 184), 1, Qt.DashLine)
            painter.setPen(pen)
            y = v.mm_to_px(FOLD_LINE_Y)
            painter.drawLine(QPointF(0, y), QPointF(card_rect.width(), y))

        painter.setPen(QPen(QColor(100, 116, 139), 1))
        painter.setBrush(Qt.NoBrush)
        painter.drawRect(card_rect)

        selected = preview if preview is not None else self.session.selected
        if selected is not None:
            self._paint_selection(painter, selected)
        painter.end()

    def _paint_grid(self, painter: QPainter, card_rect: QRectF, grid_size: float) -> None:
        step = self.view.mm_to_px(grid_size)
        if step < 4:
            return
        painter.setPen(QPen(QColor(241, 245, 249), 1))
        x = step
        while x < card_rect.width():
            painter.drawLine(QPointF(x, 0), QPointF(x, card_rect.height()))
            x += step
        y = step
        while y < card_rect.height():
            painter.drawLine(QPointF(0, y), QPointF(card_rect.width(), y))
            y += step

    def _rotate_if_back_side(self, painter: QPainter, shape, rect: QRectF) -> None:
        if shape.auto_rotate:
            center = rect.center()
            painter.translate(center)
            painter.rotate(180)
            painter.translate(-center)

    def _paint_frame(self, painter: QPainter, frame: Frame) -> None:
        style = frame.style
        v = self.view
        pen = QPen(qcolor(style.stroke_color), max(style.stroke_width * v.zoom, 0.5),
                   PEN_STYLES.get(style.line_style, Qt.SolidLine))
        painter.save()
        painter.setOpacity(style.opacity)

        if frame.is_line and frame.line_start is not None and frame.line_end is not None:
            painter.setPen(pen)
            painter.drawLine(
                QPointF(v.mm_to_px(frame.line_start.x), v.mm_to_px(frame.line_start.y)),
                QPointF(v.mm_to_px(frame.line_end.x), v.mm_to_px(frame.line_end.y)),
            )
            painter.restore()
            return

        rect = self._rect(frame)
        self._rotate_if_back_side(painter, frame, rect)
        painter.setPen(pen if style.stroke_width > 0 else Qt.NoPen)
        fill = style.fill_color
        painter.setBrush(QBrush(qcolor(fill)) if fill and fill != "transparent" else Qt.NoBrush)

        if frame.kind is FrameKind.RECTANGLE:
            painter.drawRect(rect)
        elif frame.kind is FrameKind.ROUNDED_RECTANGLE:
            radius = v.mm_to_px(style.border_radius or 0)
            painter.drawRoundedRect(rect, radius, radius)
        elif frame.kind is FrameKind.CIRCLE:
            painter.drawEllipse(rect)
        elif frame.kind is FrameKind.TEXT:
            self._paint_text(painter, rect, frame.text or "", "custom", style.font_size or 12,
                             frame.font_family or "Arial", style.color or "#000000",
                             TextAlign.LEFT, VerticalAlign.MIDDLE)
        painter.restore()

    def _paint_element(self, painter: QPainter, element: Element) -> None:
        style = element.style or ElementStyle()
        rect = self._rect(element)
        painter.save()
        self._rotate_if_back_side(painter, element, rect)
        painter.setOpacity(style.opacity)
        if style.background_color and style.background_color != "transparent":
            painter.fillRect(rect, qcolor(style.background_color))

        value = resolve(element.data_binding, self.record, element.custom_text)
        settings = self.session.template.settings
        color = style.color
        family = style.font_family
        if not element.is_custom and settings.unified_colors is not None:
            color = settings.unified_colors.content_color
        if not element.is_custom and settings.unified_fonts is not None:
            family = settings.unified_fonts.content.font_family

        if element.kind in (ElementKind.TEXT, ElementKind.BADGE):
            self._paint_text(painter, rect, value, element.data_binding, style.font_size, family, color,
                             style.text_align, style.vertical_align)
        elif element.kind is ElementKind.IMAGE:
            self._paint_image(painter, rect, element)
        elif element.kind is ElementKind.QRCODE:
            painter.setPen(QPen(QColor(30, 41, 59), 1))
            painter.setBrush(QColor(241, 245, 249))
            painter.drawRect(rect)
            painter.drawText(rect, Qt.AlignCenter, "QR")
        else:
            painter.setPen(QPen(qcolor(color), 1))
            painter.setBrush(Qt.NoBrush)
            painter.drawRect(rect)

        if element.label is not None and element.label.show:
            label_color = settings.unified_colors.data_label_color if settings.unified_colors else None
            font = self._font(family, (element.label.font_size or style.font_size * 0.7))
            painter.setFont(font)
            painter.setPen(qcolor(label_color or element.label.color or "#666666"))
            height = QFontMetricsF(font).height()
            painter.drawText(QRectF(rect.left(), rect.top() - height, rect.width(), height),
                             Qt.AlignLeft | Qt.AlignBottom,
                             label_text(element.data_binding, element.label.text))
        painter.restore()

    def _font(self, family: str, font_size: float) -> QFont:
        font = QFont(family.split(",")[0].strip().strip("'\""))
        font.setPixelSize(max(int(round(font_size * self.view.zoom)), 1))
        return font

    def _measure(self, text: str, font_size: float, family: str) -> float:
        return QFontMetricsF(self._font(family, font_size / self.view.zoom)).horizontalAdvance(text)

    def _paint_text(self, painter: QPainter, rect: QRectF, text: str, binding: str, font_size: float,
                    family: str, color: str, align: TextAlign, valign: VerticalAlign) -> None:
        if not text or rect.width() <= 0 or rect.height() <= 0:
            return
        font_px = font_size * self.view.zoom
        fit = compute_autofit(text, binding, font_px, rect.width(), rect.height(), family, self._measure)
        painter.save()
        painter.setClipRect(rect)
        painter.setFont(self._font(family, font_size))
        painter.setPen(qcolor(color))
        center = rect.center()
        painter.translate(center)
        painter.scale(fit.scale_x, fit.scale_y)
        w = rect.width() / fit.scale_x
        h = rect.height() / fit.scale_y
        painter.drawText(QRectF(-w / 2, -h / 2, w, h), H_ALIGN[align] | V_ALIGN[valign], "\n".join(fit.lines))
        painter.restore()

    def _paint_image(self, painter: QPainter, rect: QRectF, element: Element) -> None:
        settings = element.image_settings
        pixmap = None
        if settings is not None and settings.src and not settings.src.startswith("data:"):
            pixmap = self._pixmaps.get(settings.src)
            if pixmap is None:
                pixmap = QPixmap(settings.src)
                self._pixmaps[settings.src] = pixmap
        if pixmap is not None and not pixmap.isNull():
            source = QRectF(pixmap.rect())
            if settings.crop is not None:
                crop = settings.crop
                source = QRectF(crop.x * source.width(), crop.y * source.height(),
                                crop.width * source.width(), crop.height * source.height())
            painter.drawPixmap(rect, pixmap, source)
            return
        painter.setPen(QPen(QColor(148, 163, 184), 1, Qt.DashLine))
        painter.setBrush(QColor(248, 250, 252))
        painter.drawRect(rect)
        painter.drawText(rect, Qt.AlignCenter, "Image")

    def _paint_selection(self, painter: QPainter, shape) -> None:
        v = self.view
        painter.save()
        painter.setPen(QPen(QColor(59, 130, 246), 1, Qt.DashLine))
        painter.setBrush(Qt.NoBrush)
        if not (isinstance(shape, Frame) and shape.is_line):
            painter.drawRect(self._rect(shape))
        painter.setPen(QPen(QColor(59, 130, 246), 1))
        painter.setBrush(QColor(255, 255, 255))
        s = self.HANDLE_SIZE
        for handle, point in handle_points(shape).items():
            if point is None:
                continue
            center = QPointF(v.mm_to_px(point.x), v.mm_to_px(point.y))
            if handle.is_endpoint:
                painter.drawEllipse(center, s / 2 + 1, s / 2 + 1)
            else:
                painter.drawRect(QRectF(center.x() - s / 2, center.y() - s / 2, s, s))
        painter.restore()
