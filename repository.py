# Data access layer: typed reads and batched writes against the document store.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar

from pydantic import ValidationError

from errors import AlreadyExistsError, InvalidInputError, NotFoundError
from schemas.records import Chapter, Question, Record, Subtopic, Textbook, Topic, derive_st_id
from store import DocumentSnapshot, DocumentStore, Transaction, WriteConflict

logger = logging.getLogger("mcq-bank.repository")

TOPICS = "topics"
SUBTOPICS = "subtopics"
QUESTIONS = "questions"
TEXTBOOKS = "textbooks"

# "in" filters reject an empty list; this year never exists
EMPTY_IN_PLACEHOLDER = 0

R = TypeVar("R", bound=Record)


@dataclass(frozen=True)
class Mutation:
    kind: str  # "set" | "update" | "delete"
    collection: str
    doc_id: str
    data: Dict[str, Any] = field(default_factory=dict)


def _parse(docs: Iterable[DocumentSnapshot], model: Type[R]) -> List[R]:
    out: List[R] = []
    for d in docs:
        try:
            out.append(model.model_validate({**d.data, "id": d.id}))
        except ValidationError as e:
            # Skip invalid records instead of failing the whole list
            logger.warning("skipping invalid %s document %s: %s", model.__name__, d.id, e)
    return out


def _aristo_key(topic: Topic):
    return (topic.aristo is None, topic.aristo if topic.aristo is not None else 0)


def _year_qnum(q: Question):
    return (q.year, q.q_num)


class Repository:
    def __init__(self, store: DocumentStore):
        self.store = store

    # --- Topics ----------------------------------------------------------------

    def fetch_topics(self) -> List[Topic]:
        docs = []
        for d in self.store.collection(TOPICS).get():
            # Legacy topic documents carry their id only as the document key
            if not d.data.get("tId") and d.id.isdigit():
                d = DocumentSnapshot(d.id, {**d.data, "tId": int(d.id)})
            docs.append(d)
        topics = _parse(docs, Topic)
        topics.sort(key=lambda t: t.t_id)
        topics.sort(key=_aristo_key)
        return topics

    def resolve_topic(self, t_id: int) -> DocumentSnapshot:
        found = self.store.collection(TOPICS).where("tId", "==", t_id).limit(1).get()
        if not found:
            raise NotFoundError(f"Topic with ID {t_id} not found.", key="topicNotFound")
        return found[0]

    def update_topics(self, changes: Mapping[str, Dict[str, Any]]) -> int:
        """Partial updates keyed by topic document id, committed as one batch."""
        return self.apply_batch(
            Mutation("update", TOPICS, doc_id, dict(fields))
            for doc_id, fields in changes.items()
            if fields
        )

    # --- Questions -------------------------------------------------------------

    def fetch_questions(
        self, year: Optional[int] = None, t_id: Optional[int] = None
    ) -> List[Question]:
        query = self.store.collection(QUESTIONS)
        if year is not None:
            query = query.where("year", "==", year)
        if t_id is not None:
            query = query.where("tId", "array-contains", t_id)
        questions = _parse(query.get(), Question)
        questions.sort(key=lambda q: q.q_num)
        return questions

    def fetch_all_questions(self) -> List[Question]:
        return _parse(self.store.collection(QUESTIONS).get(), Question)

    def fetch_topic_questions(self, t_id: int) -> List[Question]:
        questions = _parse(
            self.store.collection(QUESTIONS).where("tId", "array-contains", t_id).get(), Question
        )
        questions.sort(key=_year_qnum)
        return questions

    def fetch_worksheet_questions(self, years: Sequence[int], t_id: int) -> List[Question]:
        valid_years = list(years) or [EMPTY_IN_PLACEHOLDER]
        query = (
            self.store.collection(QUESTIONS)
            .where("year", "in", valid_years)
            .where("tId", "array-contains", t_id)
        )
        return _parse(query.get(), Question)

    def save_assignments(self, assignments: Mapping[str, Sequence[int]]) -> int:
        """Full-array stIds replacement per question document, as one batch."""
        return self.apply_batch(
            Mutation("update", QUESTIONS, doc_id, {"stIds": list(st_ids)})
            for doc_id, st_ids in assignments.items()
        )

    # --- Subtopics -------------------------------------------------------------

    def fetch_subtopics(self, t_id: int) -> List[Subtopic]:
        query = self.store.collection(SUBTOPICS).where("tId", "==", t_id).order_by("stSeq")
        return _parse(query.get(), Subtopic)

    def create_subtopic(self, t_id: int, title_c: str, title_e: str) -> Subtopic:
        title_c, title_e = (title_c or "").strip(), (title_e or "").strip()
        if not title_c or not title_e:
            raise InvalidInputError(key="requiredFields")

        def _create(tx: Transaction) -> Subtopic:
            latest = tx.query(
                self.store.collection(SUBTOPICS)
                .where("tId", "==", t_id)
                .order_by("stSeq", descending=True)
            )
            last_seq = latest[0].data["stSeq"] if latest else 0
            seq = last_seq + 1
            subtopic = Subtopic(
                tId=t_id,
                stSeq=seq,
                stId=derive_st_id(t_id, seq),
                stTitleC=title_c,
                stTitleE=title_e,
            )
            # (tId, stSeq) is the document key, so racing creators cannot share a seq
            doc_id = f"{t_id}_{seq}"
            tx.create(SUBTOPICS, doc_id, subtopic.to_document())
            return subtopic.model_copy(update={"id": doc_id})

        subtopic = self.store.run_transaction(_create)
        logger.info("created subtopic %s (stSeq=%s) under topic %s", subtopic.st_id, subtopic.st_seq, t_id)
        return subtopic

    def update_subtopic(self, doc_id: str, title_c: str, title_e: str) -> None:
        title_c, title_e = (title_c or "").strip(), (title_e or "").strip()
        if not title_c or not title_e:
            raise InvalidInputError(key="requiredFields")
        self.store.update(SUBTOPICS, doc_id, {"stTitleC": title_c, "stTitleE": title_e})

    def delete_subtopic(self, doc_id: str) -> None:
        # Questions keep their stIds; the dangling reference is accepted
        self.store.delete(SUBTOPICS, doc_id)

    # --- Textbooks -------------------------------------------------------------

    def fetch_textbooks(self) -> List[Textbook]:
        textbooks = _parse(self.store.collection(TEXTBOOKS).get(), Textbook)
        return [tb.model_copy(update={"chapters": tb.sorted_chapters()}) for tb in textbooks]

    def resolve_textbook(self, tb_id: str) -> DocumentSnapshot:
        found = self.store.collection(TEXTBOOKS).where("tbId", "==", tb_id).limit(1).get()
        if not found:
            raise NotFoundError(f"Textbook with ID {tb_id} not found.", key="textbookNotFound")
        return found[0]

    def fetch_chapters(self, tb_id: str) -> List[Chapter]:
        snapshot = self.resolve_textbook(tb_id)
        textbook = Textbook.model_validate({**snapshot.data, "id": snapshot.id})
        return textbook.sorted_chapters()

    def create_textbook(self, textbook: Textbook) -> str:
        tb_id = textbook.tb_id.strip()
        if not tb_id:
            raise InvalidInputError(key="textbookIdRequired")
        existing = self.store.collection(TEXTBOOKS).where("tbId", "==", tb_id).limit(1).get()
        if existing:
            raise AlreadyExistsError(f"Textbook with ID {tb_id} already exists.")
        data = textbook.model_copy(update={"chapters": textbook.sorted_chapters()}).to_document()
        data["tbId"] = tb_id
        data["createdAt"] = datetime.now(UTC).isoformat()
        # keyed by tbId, the same key the seed import uses
        try:
            self.store.create(TEXTBOOKS, tb_id, data)
        except WriteConflict:
            raise AlreadyExistsError(f"Textbook with ID {tb_id} already exists.") from None
        logger.info("new textbook %s added", tb_id)
        return tb_id

    def update_textbook(self, tb_id: str, textbook: Textbook) -> None:
        snapshot = self.resolve_textbook(tb_id)
        data = textbook.model_copy(update={"chapters": textbook.sorted_chapters()}).to_document()
        data.pop("tbId", None)
        self.store.update(TEXTBOOKS, snapshot.id, data)
        logger.info("textbook %s (doc %s) updated", tb_id, snapshot.id)

    def delete_textbook(self, tb_id: str) -> None:
        snapshot = self.resolve_textbook(tb_id)
        self.store.delete(TEXTBOOKS, snapshot.id)
        logger.info("textbook %s (doc %s) deleted", tb_id, snapshot.id)

    # --- Batches ---------------------------------------------------------------

    def apply_batch(self, mutations: Iterable[Mutation]) -> int:
        """Commit all mutations atomically. Returns how many were written; 0 means no call."""
        batch = self.store.batch()
        for m in mutations:
            if m.kind == "set":
                batch.set(m.collection, m.doc_id, m.data)
            elif m.kind == "update":
                batch.update(m.collection, m.doc_id, m.data)
            elif m.kind == "delete":
                batch.delete(m.collection, m.doc_id)
            else:
                raise ValueError(f"Unknown mutation kind: {m.kind}")
        if len(batch) == 0:
            return 0
        batch.commit()
        return len(batch)
