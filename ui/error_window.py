from datetime import datetime

from PySide6.QtCore import Qt
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import (
    QHBoxLayout,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

HEADERS = ("Time", "Level", "Title", "Details")


class ErrorLogWidget(QWidget):
    """Table of rejected edits, failed exports and other user notices."""

    def __init__(self, parent=None):
        super().__init__(parent)
        layout = QVBoxLayout()

        self.table = QTableWidget(0, len(HEADERS))
        self.table.setHorizontalHeaderLabels(list(HEADERS))
        self.table.horizontalHeader().setStretchLastSection(True)
        self.table.itemSelectionChanged.connect(self.update_copy_button_state)
        layout.addWidget(self.table)

        controls = QHBoxLayout()
        self.copy_button = QPushButton("Copy")
        self.copy_button.clicked.connect(self.copy_selected)
        controls.addWidget(self.copy_button)
        self.clear_button = QPushButton("Clear")
        self.clear_button.clicked.connect(self.clear_entries)
        controls.addWidget(self.clear_button)
        controls.addStretch(1)
        layout.addLayout(controls)

        self.setLayout(layout)
        self.update_copy_button_state()

    def add_entry(self, title: str, message: str, level: str = "error"):
        row = self.table.rowCount()
        self.table.insertRow(row)
        values = (datetime.now().strftime("%Y-%m-%d %H:%M:%S"), level, title, message)
        for column, value in enumerate(values):
            item = QTableWidgetItem(value)
            item.setFlags(item.flags() & ~Qt.ItemIsEditable)
            self.table.setItem(row, column, item)
        self.table.resizeColumnsToContents()

    def entry_count(self) -> int:
        return self.table.rowCount()

    def clear_entries(self):
        self.table.setRowCount(0)
        self.update_copy_button_state()

    def copy_selected(self):
        rows = sorted({index.row() for index in self.table.selectedIndexes()})
        if not rows:
            return

        entries: list[str] = []
        for row in rows:
            cells = (self.table.item(row, column) for column in range(len(HEADERS)))
            entries.append(" | ".join(filter(None, (cell.text() if cell else "" for cell in cells))))
        QGuiApplication.clipboard().setText("\n".join(entries))

    def update_copy_button_state(self):
        self.copy_button.setEnabled(bool(self.table.selectedIndexes()))
