# projectz/ui/project_editor_dialog.py
# Rev 0.2.0: Name / Due date / Priority form used for both "New" and "Edit"
from __future__ import annotations
from datetime import datetime
from typing import Optional

from PySide6.QtCore import QDate, QDateTime, QTime
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QFormLayout, QComboBox, QDateTimeEdit,
    QDialogButtonBox, QLineEdit, QWidget
)

from projectz.models.entities import PRIORITY_RANGE, Project


class ProjectEditorDialog(QDialog):
    """
    Edits a copy of a Project. The dialog never touches the database:
    callers read project() after exec() and save it themselves.
    """

    def __init__(self, project: Optional[Project] = None, parent: QWidget | None = None):
        super().__init__(parent)
        self._original = project
        is_new = project is None or project.id is None
        self.setWindowTitle("New Project" if is_new else f"Edit Project #{project.id}")

        self._name = QLineEdit()
        self._name.setPlaceholderText("Project name")

        self._due = QDateTimeEdit()
        self._due.setCalendarPopup(True)
        self._due.setDisplayFormat("yyyy-MM-dd HH:mm")

        self._cmb_priority = QComboBox()
        for value in PRIORITY_RANGE:
            self._cmb_priority.addItem(str(value), value)

        self._load_values(project)

        form = QFormLayout()
        form.addRow("Name:", self._name)
        form.addRow("Due date:", self._due)
        form.addRow("Priority:", self._cmb_priority)

        btns = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        btns.accepted.connect(self.accept)
        btns.rejected.connect(self.reject)

        lay = QVBoxLayout(self)
        lay.addLayout(form)
        lay.addWidget(btns)
        self.setMinimumWidth(360)
        self._name.setFocus()

    def _load_values(self, project: Optional[Project]) -> None:
        if project is None:
            self._due.setDateTime(QDateTime.currentDateTime())
            self._cmb_priority.setCurrentIndex(0)
            return
        self._name.setText(project.name)
        d = project.due_date
        self._due.setDateTime(QDateTime(QDate(d.year, d.month, d.day), QTime(d.hour, d.minute, d.second)))
        i = self._cmb_priority.findData(project.priority)
        if i < 0:
            # Out-of-range priorities are kept as-is
            self._cmb_priority.addItem(str(project.priority), project.priority)
            i = self._cmb_priority.count() - 1
        self._cmb_priority.setCurrentIndex(i)

    def project(self) -> Project:
        due: datetime = self._due.dateTime().toPython()
        return Project(
            id=self._original.id if self._original else None,
            name=self._name.text().strip(),
            due_date=due.replace(second=0, microsecond=0),
            priority=int(self._cmb_priority.currentData()),
        )
