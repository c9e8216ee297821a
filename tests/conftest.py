import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from editor.core.config import EditorSettings
from editor.core.models import (
    Element,
    ElementKind,
    ElementStyle,
    Frame,
    FrameKind,
    ImageSettings,
    Point,
    QRSettings,
    Size,
    Template,
)


class FakeClock:
    """Millisecond clock that advances by ``step`` on every read."""

    def __init__(self, start: int = 1_000_000, step: int = 5_000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


def make_template() -> Template:
    return Template(
        id="t1",
        name="Test",
        elements=(
            Element(
                id="artist",
                kind=ElementKind.TEXT,
                data_binding="artist",
                position=Point(6, 20),
                size=Size(94, 8),
                style=ElementStyle(font_size=20),
            ),
            Element(
                id="qr",
                kind=ElementKind.QRCODE,
                data_binding="discogsUrl",
                position=Point(80, 50),
                size=Size(20, 20),
                qr_settings=QRSettings(),
            ),
            Element(
                id="photo",
                kind=ElementKind.IMAGE,
                data_binding="custom",
                position=Point(10, 40),
                size=Size(40, 30),
                image_settings=ImageSettings(original_width=400, original_height=300),
            ),
        ),
        frames=(
            Frame(id="box", kind=FrameKind.RECTANGLE, position=Point(4, 18), size=Size(30, 20), z_index=1),
            Frame(
                id="rule",
                kind=FrameKind.LINE,
                position=Point(10, 30),
                size=Size(30, 1),
                line_start=Point(10, 30),
                line_end=Point(40, 30),
                z_index=1,
            ),
            Frame(id="ring", kind=FrameKind.CIRCLE, position=Point(60, 20), size=Size(20, 20), z_index=2),
        ),
    )


@pytest.fixture
def template():
    return make_template()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return EditorSettings(_env_file=None)


@pytest.fixture(scope="session")
def qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance() or QApplication([])
    yield app
