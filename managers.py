"""
Row-level CRUD for subtopics and textbooks, as driven by the admin panel.

Validation failures raise InvalidInputError before any store call. Store
failures are caught, logged and kept in `manager.error`; local edits survive.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import ValidationError

from errors import BankError, InvalidInputError, NotFoundError, StoreError, message
from repository import Repository
from schemas.records import Subtopic, Textbook

logger = logging.getLogger("mcq-bank.managers")

Confirm = Callable[[str], bool]

TEMP_PREFIX = "TEMP_"
TEXTBOOK_FIELDS = ("tbId", "tbTitleC", "tbTitleE", "publisher", "isJunior")
CHAPTER_FIELDS = ("cNum", "chTitleC", "chTitleE")
SUBTOPIC_FIELDS = {"stTitleC": "title_c", "stTitleE": "title_e"}


def _require_titles(title_c: Optional[str], title_e: Optional[str]) -> None:
    if not (title_c or "").strip() or not (title_e or "").strip():
        raise InvalidInputError(key="requiredFields")


class SubtopicManager:
    def __init__(self, repo: Repository, t_id: int, language: str = "en"):
        self.repo = repo
        self.t_id = t_id
        self.language = language
        self.subtopics: List[Subtopic] = []
        # clone of the row in edit mode, if any
        self.editing: Optional[Subtopic] = None
        self.error: Optional[str] = None
        self.loading = False
        self._active = True

    def close(self) -> None:
        self._active = False

    def load(self) -> bool:
        self.loading = True
        self.error = None
        try:
            subtopics = self.repo.fetch_subtopics(self.t_id)
        except StoreError as e:
            logger.error("error fetching subtopics for topic %s: %s", self.t_id, e)
            if self._active:
                self.error = message("fetchSubtopics", self.language)
            return False
        finally:
            self.loading = False
        if self._active:
            self.subtopics = subtopics
        return self._active

    @staticmethod
    def can_create(title_c: Optional[str], title_e: Optional[str]) -> bool:
        return bool((title_c or "").strip() and (title_e or "").strip())

    def create(self, title_c: str, title_e: str) -> Optional[Subtopic]:
        _require_titles(title_c, title_e)
        self.error = None
        try:
            subtopic = self.repo.create_subtopic(self.t_id, title_c, title_e)
        except StoreError as e:
            logger.error("error adding subtopic to topic %s: %s", self.t_id, e)
            if self._active:
                self.error = message("addSubtopic", self.language)
            return None
        self.load()
        return subtopic

    def start_editing(self, doc_id: str) -> Subtopic:
        for st in self.subtopics:
            if st.id == doc_id:
                self.editing = st.model_copy(deep=True)
                return self.editing
        raise KeyError(doc_id)

    def edit(self, field: str, value: str) -> None:
        if self.editing is None:
            raise RuntimeError("No subtopic is being edited.")
        if field not in SUBTOPIC_FIELDS:
            raise InvalidInputError(f"Unknown subtopic field: {field}")
        self.editing = self.editing.model_copy(update={SUBTOPIC_FIELDS[field]: value})

    def cancel_editing(self) -> None:
        self.editing = None

    def save_editing(self) -> bool:
        if self.editing is None:
            return False
        _require_titles(self.editing.title_c, self.editing.title_e)
        edited = self.editing.model_copy(
            update={"title_c": self.editing.title_c.strip(), "title_e": self.editing.title_e.strip()}
        )
        self.error = None
        try:
            self.repo.update_subtopic(edited.id, edited.title_c, edited.title_e)
        except BankError as e:
            logger.error("error updating subtopic %s: %s", edited.id, e)
            if self._active:
                self.error = message("updateSubtopic", self.language)
            return False

        if self._active:
            self.subtopics = [edited if st.id == edited.id else st for st in self.subtopics]
            self.editing = None
        return True

    def delete(self, doc_id: str, confirm: Confirm) -> bool:
        if not confirm(message("confirmDeleteSubtopic", self.language)):
            return False
        self.error = None
        try:
            self.repo.delete_subtopic(doc_id)
        except StoreError as e:
            logger.error("error deleting subtopic %s: %s", doc_id, e)
            if self._active:
                self.error = message("deleteSubtopic", self.language)
            return False
        if self._active:
            self.subtopics = [st for st in self.subtopics if st.id != doc_id]
            if self.editing is not None and self.editing.id == doc_id:
                self.editing = None
        return True


# --- Textbooks ------------------------------------------------------------------


def new_temp_key() -> str:
    return f"{TEMP_PREFIX}{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


def is_temp_key(key: str) -> bool:
    return key.startswith(TEMP_PREFIX)


def normalize_tb_id(value: str) -> str:
    return re.sub(r"\s+", "_", (value or "").upper())


def parse_chapter_number(value: Any) -> int:
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def _blank_textbook() -> Dict[str, Any]:
    return {
        "tbId": "",
        "tbTitleC": "",
        "tbTitleE": "",
        "publisher": "",
        "isJunior": False,
        "chapters": [],
    }


class TextbookManager:
    """
    Drafts are keyed by tbId for saved textbooks and by a TEMP_ key for new ones.
    The TEMP_ key is local only; the user-chosen tbId lives in the draft itself
    and becomes the key once the first save succeeds.
    """

    def __init__(self, repo: Repository, language: str = "en"):
        self.repo = repo
        self.language = language
        self.drafts: Dict[str, Dict[str, Any]] = {}
        self.saving: Set[str] = set()
        self.error: Optional[str] = None
        self.loading = False
        self._active = True

    def close(self) -> None:
        self._active = False

    def load(self) -> bool:
        self.loading = True
        self.error = None
        try:
            textbooks = self.repo.fetch_textbooks()
        except StoreError as e:
            logger.error("error fetching textbooks: %s", e)
            if self._active:
                self.error = message("fetchTextbooks", self.language)
            return False
        finally:
            self.loading = False

        if not self._active:
            return False
        unsaved = {k: v for k, v in self.drafts.items() if is_temp_key(k)}
        self.drafts = {**unsaved, **{tb.tb_id: tb.to_document() for tb in textbooks}}
        return True

    def is_saving(self, key: str) -> bool:
        return key in self.saving

    def _draft(self, key: str) -> Dict[str, Any]:
        try:
            return self.drafts[key]
        except KeyError:
            raise NotFoundError(f"Textbook with ID {key} not found.") from None

    def add_new(self) -> str:
        key = new_temp_key()
        # new drafts go on top
        self.drafts = {key: _blank_textbook(), **self.drafts}
        return key

    def set_field(self, key: str, field: str, value: Any) -> None:
        draft = self._draft(key)
        if field not in TEXTBOOK_FIELDS:
            raise InvalidInputError(f"Unknown textbook field: {field}")
        if field == "tbId":
            if not is_temp_key(key):
                raise InvalidInputError("The ID of a saved textbook cannot be changed.")
            value = normalize_tb_id(value)
        elif field == "isJunior":
            value = bool(value)
        draft[field] = value

    def add_chapter(self, key: str) -> int:
        chapters = self._draft(key).setdefault("chapters", [])
        chapters.append({"cNum": len(chapters) + 1, "chTitleC": "", "chTitleE": ""})
        return len(chapters) - 1

    def remove_chapter(self, key: str, index: int) -> None:
        # remaining chapters keep their cNum; gaps and duplicates are allowed
        del self._draft(key)["chapters"][index]

    def set_chapter_field(self, key: str, index: int, field: str, value: Any) -> None:
        if field not in CHAPTER_FIELDS:
            raise InvalidInputError(f"Unknown chapter field: {field}")
        chapter = self._draft(key)["chapters"][index]
        chapter[field] = parse_chapter_number(value) if field == "cNum" else value

    def save(self, key: str) -> Optional[str]:
        """Persist one draft. Returns its key after saving (promoted for new drafts) or None on failure."""
        draft = self._draft(key)
        try:
            textbook = Textbook.model_validate(draft)
        except ValidationError as e:
            raise InvalidInputError(f"Invalid textbook draft {key}: {e.error_count()} error(s)") from e
        tb_id = textbook.tb_id.strip()
        if not tb_id:
            raise InvalidInputError(key="textbookIdRequired")

        self.saving.add(key)
        self.error = None
        try:
            if is_temp_key(key):
                self.repo.create_textbook(textbook)
                new_key = tb_id
            else:
                self.repo.update_textbook(key, textbook)
                new_key = key
        except BankError as e:
            logger.error("error saving textbook %s: %s", tb_id, e)
            if self._active:
                self.error = message("saveTextbook" if isinstance(e, StoreError) else e.key, self.language)
            return None
        finally:
            self.saving.discard(key)

        if self._active:
            saved = textbook.model_copy(
                update={"tb_id": new_key, "chapters": textbook.sorted_chapters()}
            ).to_document()
            self.drafts = {(new_key if k == key else k): (saved if k == key else v) for k, v in self.drafts.items()}
        return new_key

    def delete(self, key: str, confirm: Confirm) -> bool:
        self._draft(key)
        if not confirm(message("confirmDeleteTextbook", self.language)):
            return False

        if not is_temp_key(key):
            self.error = None
            try:
                self.repo.delete_textbook(key)
            except NotFoundError:
                logger.warning("textbook %s was already gone from the store; removing locally", key)
            except StoreError as e:
                logger.error("error deleting textbook %s: %s", key, e)
                if self._active:
                    self.error = message("deleteTextbook", self.language)
                return False

        if self._active:
            self.drafts.pop(key, None)
        return True
