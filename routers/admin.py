from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from bank import import_bank
from deps.auth import require_admin
from deps.store import get_repository
from errors import BankError, NotFoundError, http_status
from repository import Repository
from schemas.admin import (
    AssignmentsIn,
    ReloadResult,
    SubtopicIn,
    TextbookUpdateIn,
    TopicsPatchIn,
    WriteResult,
)
from schemas.records import Question, Subtopic, Textbook, Topic

logger = logging.getLogger("mcq-bank.admin")

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _fail(e: BankError) -> HTTPException:
    return HTTPException(status_code=http_status(e), detail=str(e))


# ---------- Topics ----------


@router.get("/topics", response_model=List[Topic])
def admin_topics(repo: Repository = Depends(get_repository)):
    try:
        return repo.fetch_topics()
    except BankError as e:
        raise _fail(e)


@router.patch("/topics", response_model=WriteResult)
def patch_topics(body: TopicsPatchIn, repo: Repository = Depends(get_repository)):
    try:
        doc_ids = {t.t_id: t.id for t in repo.fetch_topics()}
        changes = {}
        for t_id, patch in body.topics.items():
            if t_id not in doc_ids:
                raise NotFoundError(f"Topic with ID {t_id} not found.", key="topicNotFound")
            changes[doc_ids[t_id]] = patch.model_dump(by_alias=True, exclude_unset=True)
        written = repo.update_topics(changes)
    except BankError as e:
        raise _fail(e)
    return WriteResult(written=written)


@router.get("/topics/{t_id}/questions", response_model=List[Question])
def admin_topic_questions(t_id: int, repo: Repository = Depends(get_repository)):
    try:
        return repo.fetch_topic_questions(t_id)
    except BankError as e:
        raise _fail(e)


# ---------- Subtopics ----------


@router.get("/topics/{t_id}/subtopics", response_model=List[Subtopic])
def list_subtopics(t_id: int, repo: Repository = Depends(get_repository)):
    try:
        return repo.fetch_subtopics(t_id)
    except BankError as e:
        raise _fail(e)


@router.post("/topics/{t_id}/subtopics", response_model=Subtopic, status_code=201)
def create_subtopic(t_id: int, body: SubtopicIn, repo: Repository = Depends(get_repository)):
    try:
        repo.resolve_topic(t_id)
        return repo.create_subtopic(t_id, body.title_c, body.title_e)
    except BankError as e:
        raise _fail(e)


@router.put("/subtopics/{doc_id}")
def update_subtopic(doc_id: str, body: SubtopicIn, repo: Repository = Depends(get_repository)):
    try:
        repo.update_subtopic(doc_id, body.title_c, body.title_e)
    except BankError as e:
        raise _fail(e)
    return {"ok": True}


@router.delete("/subtopics/{doc_id}")
def delete_subtopic(doc_id: str, repo: Repository = Depends(get_repository)):
    try:
        repo.delete_subtopic(doc_id)
    except BankError as e:
        raise _fail(e)
    return {"ok": True}


# ---------- Assignments ----------


@router.put("/assignments", response_model=WriteResult)
def save_assignments(body: AssignmentsIn, repo: Repository = Depends(get_repository)):
    try:
        written = repo.save_assignments(body.assignments)
    except BankError as e:
        raise _fail(e)
    return WriteResult(written=written)


# ---------- Textbooks ----------


@router.post("/textbooks", status_code=201)
def create_textbook(body: Textbook, repo: Repository = Depends(get_repository)):
    try:
        doc_id = repo.create_textbook(body)
    except BankError as e:
        raise _fail(e)
    return {"ok": True, "id": doc_id, "tbId": body.tb_id.strip()}


@router.put("/textbooks/{tb_id}")
def update_textbook(tb_id: str, body: TextbookUpdateIn, repo: Repository = Depends(get_repository)):
    try:
        repo.update_textbook(tb_id, body)
    except BankError as e:
        raise _fail(e)
    return {"ok": True}


@router.delete("/textbooks/{tb_id}")
def delete_textbook(tb_id: str, repo: Repository = Depends(get_repository)):
    try:
        repo.delete_textbook(tb_id)
    except BankError as e:
        raise _fail(e)
    return {"ok": True}


# ---------- Bank ----------


@router.post("/reload", response_model=ReloadResult)
def reload_bank(repo: Repository = Depends(get_repository)):
    try:
        counts = import_bank(repo)
    except BankError as e:
        raise _fail(e)
    logger.info("bank reloaded: %s", counts)
    return ReloadResult(counts=counts)
