"""
Admin panel navigation: the password gate, the topics/textbooks sections and
the three topic steps (topics -> subtopics -> question assignment).

Leaving a view whose editor has unsaved changes asks `confirm` first.
The password gate is a convenience, not a security boundary.
"""

from __future__ import annotations

import logging
import os
import secrets
from enum import Enum, IntEnum
from typing import Optional

from editing import AssignmentEditor, TopicEditor
from errors import message
from managers import Confirm, SubtopicManager, TextbookManager
from repository import Repository

logger = logging.getLogger("mcq-bank.admin")


class Section(str, Enum):
    TOPICS = "topics"
    TEXTBOOKS = "textbooks"


class Step(IntEnum):
    TOPICS = 1
    SUBTOPICS = 2
    ASSIGNMENTS = 3


class AdminPanel:
    def __init__(self, repo: Repository, confirm: Confirm, language: str = "en"):
        self.repo = repo
        self.confirm = confirm
        self.language = language
        self.authenticated = False
        self.error: Optional[str] = None
        self.section = Section.TOPICS
        self.step = Step.TOPICS
        self.selected_topic: Optional[int] = None

        self.topic_editor: Optional[TopicEditor] = None
        self.subtopics: Optional[SubtopicManager] = None
        self.assignments: Optional[AssignmentEditor] = None
        self.textbooks: Optional[TextbookManager] = None

    def login(self, password: str) -> bool:
        expected = os.getenv("ADMIN_PASSWORD", "")
        if not expected:
            logger.error("ADMIN_PASSWORD not configured; admin login disabled")
        if expected and secrets.compare_digest(password.encode(), expected.encode()):
            self.authenticated = True
            self.error = None
            self._open_topics()
            return True
        self.error = message("wrongPassword", self.language)
        return False

    # --- Dirty tracking ----------------------------------------------------------

    @property
    def dirty(self) -> bool:
        if self.section != Section.TOPICS:
            return False
        if self.step == Step.TOPICS:
            return bool(self.topic_editor and self.topic_editor.dirty)
        if self.step == Step.ASSIGNMENTS:
            return bool(self.assignments and self.assignments.dirty)
        return False

    def _may_leave(self) -> bool:
        if not self.dirty:
            return True
        return bool(self.confirm(message("unsavedChanges", self.language)))

    def before_unload(self) -> Optional[str]:
        return message("unsavedChanges", self.language) if self.dirty else None

    # --- Views -------------------------------------------------------------------

    def _require_login(self) -> None:
        if not self.authenticated:
            raise PermissionError("Admin panel is locked.")

    def _close_views(self) -> None:
        for view in (self.topic_editor, self.subtopics, self.assignments, self.textbooks):
            if view is not None:
                view.close()
        self.topic_editor = self.subtopics = self.assignments = self.textbooks = None

    def _open_topics(self) -> None:
        self._close_views()
        self.topic_editor = TopicEditor(self.repo, self.language)
        self.topic_editor.load()

    def _open_subtopics(self) -> None:
        self._close_views()
        self.subtopics = SubtopicManager(self.repo, self.selected_topic, self.language)
        self.subtopics.load()

    def _open_assignments(self) -> None:
        self._close_views()
        self.assignments = AssignmentEditor(self.repo, self.selected_topic, self.language)
        self.assignments.load()

    def _open_textbooks(self) -> None:
        self._close_views()
        self.textbooks = TextbookManager(self.repo, self.language)
        self.textbooks.load()

    # --- Navigation --------------------------------------------------------------

    def select_topic(self, t_id: int) -> bool:
        self._require_login()
        if self.section != Section.TOPICS or self.step != Step.TOPICS:
            return False
        if not self._may_leave():
            return False
        self.selected_topic = t_id
        self.step = Step.SUBTOPICS
        self._open_subtopics()
        return True

    def go_back(self) -> bool:
        self._require_login()
        if self.step == Step.TOPICS or not self._may_leave():
            return False
        if self.step == Step.ASSIGNMENTS:
            self.step = Step.SUBTOPICS
            self._open_subtopics()
        else:
            self.step = Step.TOPICS
            self.selected_topic = None
            self._open_topics()
        return True

    def proceed(self) -> bool:
        self._require_login()
        if self.step != Step.SUBTOPICS or not self._may_leave():
            return False
        self.step = Step.ASSIGNMENTS
        self._open_assignments()
        return True

    def switch_section(self, section: Section) -> bool:
        self._require_login()
        section = Section(section)
        if section == self.section:
            return True
        if not self._may_leave():
            return False
        self.section = section
        if section == Section.TEXTBOOKS:
            self._open_textbooks()
        else:
            self.step = Step.TOPICS
            self.selected_topic = None
            self._open_topics()
        return True
