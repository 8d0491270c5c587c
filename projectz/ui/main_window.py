# Rev 0.2.0
# projectZ: Main Window
# Columns: Name | Due date | Priority

from __future__ import annotations
import logging
from typing import List

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QComboBox, QLabel,
    QTableWidget, QTableWidgetItem, QHeaderView, QMessageBox, QDialog
)

from projectz.models.entities import Project, ProjectOrdering
from projectz.repositories.errors import PersistenceError
from projectz.ui.project_editor_dialog import ProjectEditorDialog
from projectz.viewmodels.project_list_viewmodel import ProjectListViewModel

log = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self, *, viewmodel: ProjectListViewModel, width: int = 720, height: int = 540, parent=None):
        super().__init__(parent)
        self._vm = viewmodel
        self._rows: List[Project] = []

        self.setWindowTitle("projectZ")
        self.resize(width, height)

        # ---- central ----
        central = QWidget(self)
        v = QVBoxLayout(central)

        top_bar = QHBoxLayout()
        top_bar.addWidget(QLabel("Order by:"))
        self._cmb_ordering = QComboBox()
        for o in ProjectOrdering:
            self._cmb_ordering.addItem(o.label, o.value)
        self._cmb_ordering.setCurrentIndex(self._cmb_ordering.findData(self._vm.ordering.value))
        self._cmb_ordering.currentIndexChanged.connect(self._on_ordering_selected)
        top_bar.addWidget(self._cmb_ordering)
        top_bar.addStretch(1)

        self._btn_new = QPushButton("New…")
        self._btn_new.clicked.connect(self._create_project)
        self._btn_random = QPushButton("Add random")
        self._btn_random.clicked.connect(self._add_random_project)
        self._btn_delete = QPushButton("Delete")
        self._btn_delete.clicked.connect(self._delete_selected)
        self._btn_delete_all = QPushButton("Delete all")
        self._btn_delete_all.clicked.connect(self._delete_all)
        for b in (self._btn_new, self._btn_random, self._btn_delete, self._btn_delete_all):
            top_bar.addWidget(b)
        v.addLayout(top_bar)

        self._tbl = QTableWidget(0, 3, self)
        self._tbl.setSelectionBehavior(QTableWidget.SelectRows)
        self._tbl.setSelectionMode(QTableWidget.ExtendedSelection)
        self._tbl.setEditTriggers(QTableWidget.NoEditTriggers)
        self._tbl.setAlternatingRowColors(True)
        self._tbl.verticalHeader().setVisible(False)
        self._tbl.setHorizontalHeaderLabels(["Name", "Due date", "Priority"])
        h = self._tbl.horizontalHeader()
        h.setSectionResizeMode(0, QHeaderView.Stretch)            # Name
        h.setSectionResizeMode(1, QHeaderView.ResizeToContents)   # Due date
        h.setSectionResizeMode(2, QHeaderView.ResizeToContents)   # Priority
        self._tbl.doubleClicked.connect(self._edit_selected)
        v.addWidget(self._tbl)
        self.setCentralWidget(central)

        self._vm.projectsChanged.connect(self._render)
        self._vm.errorOccurred.connect(self._show_observation_error)

    # -------------------- rendering --------------------

    def _render(self, projects: list) -> None:
        self._rows = list(projects)
        self.setWindowTitle(f"projectZ - {len(self._rows)} Projects")
        self._tbl.setRowCount(len(self._rows))
        for r, p in enumerate(self._rows):
            name = QTableWidgetItem(p.display_name)
            name.setData(Qt.UserRole, p.id)
            if not p.name:
                f = QFont(name.font())
                f.setItalic(True)
                name.setFont(f)
            due = QTableWidgetItem(p.due_date.strftime("%Y-%m-%d %H:%M"))
            prio = QTableWidgetItem(f"{p.priority} priority")
            prio.setTextAlignment(Qt.AlignRight | Qt.AlignVCenter)
            self._tbl.setItem(r, 0, name)
            self._tbl.setItem(r, 1, due)
            self._tbl.setItem(r, 2, prio)

    def _show_observation_error(self, message: str) -> None:
        self.statusBar().showMessage(f"Could not refresh projects: {message}", 10_000)

    def _selected_rows(self) -> list[int]:
        return sorted({i.row() for i in self._tbl.selectedIndexes()})

    def _selected_ids(self) -> list[int]:
        # ids of the rows as drawn; the VM may already hold a newer list
        return [self._rows[r].id for r in self._selected_rows()
                if r < len(self._rows) and self._rows[r].id is not None]

    # -------------------- actions --------------------

    def _on_ordering_selected(self, index: int) -> None:
        value = self._cmb_ordering.itemData(index)
        if value:
            self._vm.set_ordering(ProjectOrdering(value))

    def _create_project(self) -> None:
        dlg = ProjectEditorDialog(parent=self)
        if dlg.exec() != int(QDialog.DialogCode.Accepted):
            return
        self._run("Save failed", self._vm.save_project, dlg.project())

    def _edit_selected(self, index=None) -> None:
        rows = self._selected_rows()
        if not rows or rows[0] >= len(self._rows):
            return
        dlg = ProjectEditorDialog(self._rows[rows[0]], parent=self)
        if dlg.exec() != int(QDialog.DialogCode.Accepted):
            return
        self._run("Save failed", self._vm.save_project, dlg.project())

    def _add_random_project(self) -> None:
        self._run("Save failed", self._vm.add_random_project)

    def _delete_selected(self) -> None:
        ids = self._selected_ids()
        if ids:
            self._run("Delete failed", self._vm.delete_projects, ids)

    def _delete_all(self) -> None:
        if QMessageBox.question(self, "Delete all", "Delete every project?") != QMessageBox.Yes:
            return
        self._run("Delete failed", self._vm.delete_all_projects)

    def _run(self, title: str, fn, *args) -> None:
        try:
            fn(*args)
        except PersistenceError as e:
            log.error("%s: %s", title, e)
            QMessageBox.warning(self, title, str(e))
