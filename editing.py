"""
Edit tracking for the admin panel.

`EditState` is a plain value: a deep-copied baseline, a working copy, and the
fields being tracked. Every operation returns a new state, so it can be tested
without any editor around it. The editors wrap it with loading, saving and
error reporting against the repository.
"""

from __future__ import annotations

import copy
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Hashable, List, Mapping, Optional, Sequence, Tuple, Union

from errors import BankError, StoreError, message
from repository import Repository
from schemas.records import Question, Subtopic, Topic

logger = logging.getLogger("mcq-bank.editing")

TOPIC_FIELDS = ("tTitleC", "tTitleE", "isJunior", "aristo")


def _blank_to_none(value: Any) -> Any:
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return None
    return value


@dataclass(frozen=True)
class EditState:
    baseline: Mapping[Hashable, Mapping[str, Any]]
    working: Mapping[Hashable, Mapping[str, Any]]
    fields: Tuple[str, ...]
    # numeric fields where None, "" and a missing key all mean "no value"
    optional_numeric: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_records(
        cls,
        records: Mapping[Hashable, Mapping[str, Any]],
        fields: Sequence[str],
        optional_numeric: Sequence[str] = (),
    ) -> "EditState":
        baseline = {k: dict(v) for k, v in copy.deepcopy(dict(records)).items()}
        return cls(baseline, copy.deepcopy(baseline), tuple(fields), frozenset(optional_numeric))

    def _same(self, name: str, a: Any, b: Any) -> bool:
        if name in self.optional_numeric:
            return _blank_to_none(a) == _blank_to_none(b)
        return a == b

    def changed_fields(self, key: Hashable) -> Dict[str, Any]:
        base = self.baseline.get(key, {})
        work = self.working.get(key, {})
        return {
            name: work.get(name)
            for name in self.fields
            if not self._same(name, base.get(name), work.get(name))
        }

    @property
    def dirty(self) -> bool:
        if set(self.baseline) != set(self.working):
            return True
        return any(self.changed_fields(k) for k in self.working)

    def edit(self, key: Hashable, name: str, value: Any) -> "EditState":
        if key not in self.working:
            raise KeyError(key)
        working = dict(self.working)
        working[key] = {**working[key], name: value}
        return replace(self, working=working)

    def undo(self, key: Hashable) -> "EditState":
        if key not in self.baseline:
            return self
        working = dict(self.working)
        working[key] = copy.deepcopy(dict(self.baseline[key]))
        return replace(self, working=working)

    def diff(self) -> Dict[Hashable, Dict[str, Any]]:
        out = {}
        for key in self.working:
            changes = self.changed_fields(key)
            if changes:
                out[key] = changes
        return out

    def commit(self) -> "EditState":
        baseline = copy.deepcopy(dict(self.working))
        return replace(self, baseline=baseline, working=copy.deepcopy(baseline))


class EditorStatus(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    SAVING = "saving"
    ERROR = "error"


def parse_optional_number(text: Union[str, int, float, None]) -> Optional[Union[int, float]]:
    """'' or None -> None; otherwise a finite int/float. Raises ValueError on anything else."""
    if _blank_to_none(text) is None:
        return None
    if isinstance(text, bool):
        raise ValueError(f"not a number: {text!r}")
    if isinstance(text, (int, float)):
        value = text
    else:
        s = text.strip()
        try:
            value = int(s)
        except ValueError:
            value = float(s)
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"not a finite number: {text!r}")
    return value


class Editor(ABC):
    """Shared status bookkeeping. After close() late results are dropped."""

    def __init__(self, repo: Repository, language: str = "en"):
        self.repo = repo
        self.language = language
        self.status = EditorStatus.CLEAN
        self.error: Optional[str] = None
        self.loading = False
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    @abstractmethod
    def dirty(self) -> bool:
        ...

    def close(self) -> None:
        self._active = False

    def _refresh_status(self) -> None:
        if self.status != EditorStatus.SAVING:
            self.status = EditorStatus.DIRTY if self.dirty else EditorStatus.CLEAN

    def _fail(self, key: str, exc: Exception) -> None:
        logger.error("%s: %s", key, exc)
        if self._active:
            self.status = EditorStatus.ERROR
            self.error = message(key, self.language)


class TopicEditor(Editor):
    def __init__(self, repo: Repository, language: str = "en"):
        super().__init__(repo, language)
        self.topics: List[Topic] = []
        self.state = EditState.from_records({}, TOPIC_FIELDS, optional_numeric=("aristo",))

    @property
    def dirty(self) -> bool:
        return self.state.dirty

    def load(self) -> bool:
        self.loading = True
        self.error = None
        try:
            topics = self.repo.fetch_topics()
        except StoreError as e:
            logger.error("error fetching topics: %s", e)
            if self._active:
                self.error = message("fetchTopics", self.language)
            return False
        finally:
            self.loading = False

        if not self._active:
            return False
        self.topics = topics
        self.state = EditState.from_records(
            {t.t_id: {f: t.to_document().get(f) for f in TOPIC_FIELDS} for t in topics},
            TOPIC_FIELDS,
            optional_numeric=("aristo",),
        )
        self.status = EditorStatus.CLEAN
        return True

    def working_topics(self) -> List[Topic]:
        return [
            Topic.model_validate({**t.to_document(), **self.state.working[t.t_id], "id": t.id})
            for t in self.topics
        ]

    def has_changed(self, t_id: int) -> bool:
        return bool(self.state.changed_fields(t_id))

    def _set(self, t_id: int, name: str, value: Any) -> None:
        self.state = self.state.edit(t_id, name, value)
        self._refresh_status()

    def set_title(self, t_id: int, language: str, text: str) -> None:
        self._set(t_id, "tTitleC" if language.startswith("zh") else "tTitleE", text)

    def set_junior(self, t_id: int, flag: bool) -> None:
        self._set(t_id, "isJunior", bool(flag))

    def set_aristo(self, t_id: int, text: Union[str, int, float, None]) -> bool:
        try:
            value = parse_optional_number(text)
        except ValueError:
            logger.warning("Invalid number format for aristo on topic %s: %r", t_id, text)
            return False
        self._set(t_id, "aristo", value)
        return True

    def undo(self, t_id: int) -> None:
        self.state = self.state.undo(t_id)
        self._refresh_status()

    def save(self) -> int:
        """Write only the changed fields of changed topics in one batch. Returns documents written."""
        diff = self.state.diff()
        if not diff:
            return 0

        doc_ids = {t.t_id: t.id for t in self.topics}
        changes = {doc_ids[t_id]: fields for t_id, fields in diff.items() if doc_ids.get(t_id)}

        self.status = EditorStatus.SAVING
        self.error = None
        try:
            written = self.repo.update_topics(changes)
        except BankError as e:
            self._fail("saveTopics", e)
            return 0

        if self._active:
            self.state = self.state.commit()
            self.status = EditorStatus.CLEAN
        return written


class AssignmentEditor(Editor):
    def __init__(self, repo: Repository, t_id: int, language: str = "en"):
        super().__init__(repo, language)
        self.t_id = t_id
        self.questions: List[Question] = []
        self.subtopics: List[Subtopic] = []
        # sparse: only question doc ids present here count as edited
        self.edits: Dict[str, List[int]] = {}

    @property
    def dirty(self) -> bool:
        return bool(self.edits)

    def load(self) -> bool:
        self.loading = True
        self.error = None
        try:
            try:
                subtopics = self.repo.fetch_subtopics(self.t_id)
            except StoreError as e:
                # the question list is still usable without the options
                logger.error("error fetching subtopics for assignment: %s", e)
                subtopics = None
            questions = self.repo.fetch_topic_questions(self.t_id)
        except StoreError as e:
            logger.error("error fetching questions: %s", e)
            if self._active:
                self.error = message("fetchQuestions", self.language)
            return False
        finally:
            self.loading = False

        if not self._active:
            return False
        if subtopics is not None:
            self.subtopics = subtopics
        self.questions = questions
        return True

    def subtopic_options(self) -> List[Tuple[int, str]]:
        return [(st.st_id, f"{st.st_id} - {st.title_e} / {st.title_c}") for st in self.subtopics]

    def assign(self, question_doc_id: str, st_ids: Sequence[int]) -> None:
        self.edits[question_doc_id] = list(st_ids or [])
        self._refresh_status()

    def current(self, question_doc_id: str) -> List[int]:
        if question_doc_id in self.edits:
            return list(self.edits[question_doc_id])
        for q in self.questions:
            if q.id == question_doc_id:
                return list(q.st_ids or [])
        return []

    def save(self) -> int:
        if not self.edits:
            return 0

        self.status = EditorStatus.SAVING
        self.error = None
        try:
            written = self.repo.save_assignments(self.edits)
        except BankError as e:
            self._fail("saveAssignments", e)
            return 0

        if self._active:
            self.edits = {}
            self.status = EditorStatus.CLEAN
            self.load()
        return written
