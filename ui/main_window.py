import logging
import sys

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import QApplication, QFileDialog, QMainWindow, QScrollArea, QTabWidget, QToolBar

from editor.core.config import EditorSettings, configure_logging
from editor.core.errors import TemplateImportError
from editor.core.models import ElementKind, FrameKind, Point
from editor.core.paths import ABSOLUTE_PATH
from editor.core.session import EditorSession
from editor.core.storage import TemplateStore
from editor.core.template_io import load_template, save_template
from editor.widgets.editor_canvas import EditorCanvas
from renderer.core.card_exporter import CardExporter
from renderer.core.json_loader import JSONLoader
from renderer.core.paginator import PageLayout
from renderer.core.pdf_exporter import export_cards_pdf
from renderer.core.renderer import CardRenderer
from ui.error_window import ErrorLogWidget

logger = logging.getLogger(__name__)

DROP_POINT = Point(40, 30)

ELEMENT_ACTIONS = (
    ("Artist", ElementKind.TEXT, "artist"),
    ("Title", ElementKind.TEXT, "title"),
    ("Price", ElementKind.TEXT, "price"),
    ("Comment", ElementKind.TEXT, "comment"),
    ("Custom text", ElementKind.TEXT, "custom"),
    ("Badges", ElementKind.BADGE, "badges"),
    ("Image", ElementKind.IMAGE, "custom"),
    ("QR code", ElementKind.QRCODE, "discogsUrl"),
)

FRAME_ACTIONS = (
    ("Rectangle", FrameKind.RECTANGLE),
    ("Rounded", FrameKind.ROUNDED_RECTANGLE),
    ("Circle", FrameKind.CIRCLE),
    ("Line", FrameKind.LINE),
    ("Text", FrameKind.TEXT),
)


class ErrorNotifier(QObject):
    errorOccurred = Signal(str, str, str)

    def emit_error(self, title: str, message: str, level: str = "error"):
        self.errorOccurred.emit(title, message, level)


class MainWindow(QMainWindow):
    def __init__(self, session: EditorSession, settings: EditorSettings = None):
        super().__init__()
        self.session = session
        self.settings = settings or session.settings
        self.error_notifier = ErrorNotifier()

        self.setMinimumSize(640, 480)
        self.tabs = QTabWidget()
        self.setCentralWidget(self.tabs)

        self.canvas = EditorCanvas(session)
        self.canvas.set_zoom(2.0)
        scroll = QScrollArea()
        scroll.setWidget(self.canvas)
        scroll.setWidgetResizable(True)

        self.error_log_tab = ErrorLogWidget()
        self.error_notifier.errorOccurred.connect(self.error_log_tab.add_entry)
        self.canvas.noticeRaised.connect(self.error_log_tab.add_entry)
        self.canvas.templateChanged.connect(self._update_title)

        self.tabs.addTab(scroll, "Editor")
        self.tabs.addTab(self.error_log_tab, "Log")

        self._build_toolbars()
        self._update_title()

    # ------------------------------------------------------------------
    def _action(self, toolbar: QToolBar, text: str, slot, shortcut=None) -> QAction:
        action = QAction(text, self)
        if shortcut is not None:
            action.setShortcut(shortcut)
        action.triggered.connect(slot)
        toolbar.addAction(action)
        return action

    def _build_toolbars(self):
        file_bar = self.addToolBar("File")
        self._action(file_bar, "Save", self.save_to_store, QKeySequence.Save)
        self._action(file_bar, "Import…", self.import_template)
        self._action(file_bar, "Export…", self.export_template)
        self._action(file_bar, "Print PDF…", self.export_pdf)
        self._action(file_bar, "Export PNG…", self.export_png)
        self._action(file_bar, "Undo", self.session.undo)
        self._action(file_bar, "Redo", self.session.redo)
        self._action(file_bar, "Snap", self.toggle_snap)

        element_bar = self.addToolBar("Elements")
        for text, kind, binding in ELEMENT_ACTIONS:
            self._action(element_bar, text, lambda _=False, k=kind, b=binding: self.session.add_element(k, b, DROP_POINT))

        frame_bar = self.addToolBar("Frames")
        for text, kind in FRAME_ACTIONS:
            self._action(frame_bar, text, lambda _=False, k=kind: self.session.add_frame(k, DROP_POINT))

    def _update_title(self):
        self.setWindowTitle(f"POP Maker - {self.session.template.name}")

    # ------------------------------------------------------------------
    def toggle_snap(self):
        self.session.update_settings(snap_to_grid=not self.session.template.settings.snap_to_grid)

    def save_to_store(self):
        try:
            self.session.save()
        except (OSError, RuntimeError) as exc:
            self.error_notifier.emit_error("Save failed", str(exc))

    def import_template(self):
        path, _ = QFileDialog.getOpenFileName(self, "Import template", "", "JSON (*.json)")
        if not path:
            return
        try:
            self.session.load(load_template(path))
        except (OSError, TemplateImportError) as exc:
            self.error_notifier.emit_error("Import failed", str(exc))

    def export_template(self):
        path, _ = QFileDialog.getSaveFileName(self, "Export template", f"{self.session.template.name}.json", "JSON (*.json)")
        if not path:
            return
        try:
            save_template(self.session.template, path)
        except OSError as exc:
            self.error_notifier.emit_error("Export failed", str(exc))

    def _load_cards(self):
        path, _ = QFileDialog.getOpenFileName(self, "Card list", "", "JSON (*.json)")
        if not path:
            return None
        try:
            return JSONLoader(path).load()
        except (OSError, ValueError) as exc:
            self.error_notifier.emit_error("Card list", str(exc))
            return None

    def export_pdf(self):
        records = self._load_cards()
        if not records:
            return
        path, _ = QFileDialog.getSaveFileName(self, "Print PDF", "pop_cards.pdf", "PDF (*.pdf)")
        if not path:
            return
        renderer = CardRenderer(self.session.template, dpi=self.settings.PRINT_DPI, show_fold_line=False)
        try:
            export_cards_pdf(records, renderer, path, PageLayout(margin=self.settings.PAGE_MARGIN_MM))
        except (OSError, ValueError) as exc:
            self.error_notifier.emit_error("PDF export failed", str(exc))

    def export_png(self):
        records = self._load_cards()
        if not records:
            return
        export_dir = QFileDialog.getExistingDirectory(self, "Export folder")
        if not export_dir:
            return
        renderer = CardRenderer(self.session.template, dpi=self.settings.PRINT_DPI)
        try:
            CardExporter(renderer).export_cards(records, export_dir)
        except OSError as exc:
            self.error_notifier.emit_error("PNG export failed", str(exc))

    def closeEvent(self, event):
        self.session.close()
        super().closeEvent(event)


def main():
    settings = EditorSettings()
    configure_logging(settings.LOG_LEVEL)
    app = QApplication(sys.argv)

    store = TemplateStore(ABSOLUTE_PATH(settings.STORAGE_DIR), settings.AUTOSAVE_MAX_AGE_HOURS)
    session = EditorSession(settings=settings, store=store)
    if session.restore_autosave():
        logger.info("Restored auto-saved template '%s'", session.template.name)

    window = MainWindow(session, settings)
    window.resize(900, 640)
    window.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
