# Seed importer: loads JSON/JSONL files into the question bank collections.

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import ValidationError

from repository import QUESTIONS, SUBTOPICS, TEXTBOOKS, TOPICS, Mutation, Repository
from schemas.records import Question, Record, Subtopic, Textbook, Topic

logger = logging.getLogger("mcq-bank.bank")

# collection -> (record model, document key)
SOURCES: Dict[str, Tuple[Type[Record], Callable[[Any], str]]] = {
    TOPICS: (Topic, lambda t: str(t.t_id)),
    SUBTOPICS: (Subtopic, lambda st: f"{st.t_id}_{st.st_seq}"),
    QUESTIONS: (Question, lambda q: str(q.q_id)),
    TEXTBOOKS: (Textbook, lambda tb: tb.tb_id.strip()),
}


def data_dir() -> Path:
    return Path(os.getenv("MCQ_DATA_DIR", "./data"))


def _iter_jsonl(p: Path) -> Iterable[Dict[str, Any]]:
    with p.open("r", encoding="utf-8") as f:
        for idx, line in enumerate(f, 1):
            s = line.strip()
            if not s or s.startswith("#") or s.startswith("//"):
                continue
            try:
                yield json.loads(s)
            except json.JSONDecodeError:
                # Skip malformed rows instead of failing the whole import
                logger.warning("%s:%d: malformed JSON row skipped", p.name, idx)
                continue


def _iter_json(p: Path) -> Iterable[Dict[str, Any]]:
    with p.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError:
            # Treat a broken JSON file as empty
            logger.warning("%s: not valid JSON, ignored", p.name)
            data = []
    if isinstance(data, list):
        for obj in data:
            yield obj


def _iter_files(folder: Path) -> Iterable[Dict[str, Any]]:
    for p in sorted(folder.rglob("*")):
        if not p.is_file():
            continue
        suf = p.suffix.lower()
        if suf == ".jsonl":
            yield from _iter_jsonl(p)
        elif suf == ".json":
            yield from _iter_json(p)


def load_collection(folder: Path, model: Type[Record]) -> List[Record]:
    records = []
    for raw in _iter_files(folder):
        if not isinstance(raw, dict):
            continue
        try:
            records.append(model.model_validate(raw))
        except ValidationError:
            # Skip invalid records
            continue
    return records


def _existing_textbook_keys(repo: Repository, keyed: Dict[str, Record]) -> Dict[str, Record]:
    # a textbook already stored under another document key is overwritten in place
    stored = repo.store.collection(TEXTBOOKS).where("tbId", "in", list(keyed)).get()
    doc_ids = {snap.data["tbId"]: snap.id for snap in stored}
    return {doc_ids.get(k, k): r for k, r in keyed.items()}


def import_bank(repo: Repository, root: Optional[Path] = None) -> Dict[str, int]:
    """
    Upsert every valid record under `root/<collection>/` keyed by its natural id,
    all in one batch. Returns how many records each collection received.
    """
    root = root or data_dir()
    counts: Dict[str, int] = {}
    mutations: List[Mutation] = []

    for collection, (model, doc_key) in SOURCES.items():
        folder = root / collection
        records = load_collection(folder, model) if folder.exists() else []
        keyed = {doc_key(r): r for r in records if doc_key(r)}
        if collection == TEXTBOOKS and keyed:
            keyed = _existing_textbook_keys(repo, keyed)
        mutations.extend(Mutation("set", collection, k, r.to_document()) for k, r in keyed.items())
        counts[collection] = len(keyed)

    written = repo.apply_batch(mutations)
    logger.info("bank import from %s wrote %d documents: %s", root, written, counts)
    return counts
