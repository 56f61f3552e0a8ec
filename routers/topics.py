from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from deps.store import get_repository
from errors import BankError, http_status
from repository import Repository
from schemas.records import Chapter, Textbook, Topic
from selection import filter_topics_by_chapters

router = APIRouter(tags=["topics"])


@router.get("/topics", response_model=List[Topic])
def list_topics(
    chapters: List[int] = Query(default=[], description="Only topics whose aristo chapter is listed"),
    repo: Repository = Depends(get_repository),
):
    try:
        topics = repo.fetch_topics()
    except BankError as e:
        raise HTTPException(status_code=http_status(e), detail=str(e))
    return filter_topics_by_chapters(topics, chapters)


@router.get("/textbooks", response_model=List[Textbook])
def list_textbooks(repo: Repository = Depends(get_repository)):
    try:
        return repo.fetch_textbooks()
    except BankError as e:
        raise HTTPException(status_code=http_status(e), detail=str(e))


@router.get("/textbooks/{tb_id}/chapters", response_model=List[Chapter])
def textbook_chapters(tb_id: str, repo: Repository = Depends(get_repository)):
    try:
        return repo.fetch_chapters(tb_id)
    except BankError as e:
        raise HTTPException(status_code=http_status(e), detail=str(e))
