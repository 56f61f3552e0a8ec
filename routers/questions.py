from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from deps.display import display_settings
from deps.store import get_repository
from errors import BankError, http_status
from repository import Repository
from schemas.display import DisplaySettings, GroupBy, SortBy
from schemas.records import Question
from schemas.views import QuestionGroupOut
from selection import group_questions

router = APIRouter(tags=["questions"])


@router.get("/questions", response_model=List[Question])
def list_questions(
    year: Optional[int] = Query(default=None, ge=1900, le=2100),
    repo: Repository = Depends(get_repository),
):
    try:
        return repo.fetch_questions(year=year)
    except BankError as e:
        raise HTTPException(status_code=http_status(e), detail=str(e))


@router.get("/topics/{t_id}/questions", response_model=List[Question])
def topic_questions(t_id: int, repo: Repository = Depends(get_repository)):
    try:
        return repo.fetch_topic_questions(t_id)
    except BankError as e:
        raise HTTPException(status_code=http_status(e), detail=str(e))


@router.get("/questions/grouped", response_model=List[QuestionGroupOut])
def grouped_questions(
    years: List[int] = Query(default=[]),
    topics: List[int] = Query(default=[]),
    group_by: GroupBy = GroupBy.TOPIC,
    sort_by: SortBy = SortBy.YEAR_QNUM,
    settings: DisplaySettings = Depends(display_settings),
    repo: Repository = Depends(get_repository),
):
    # filtering happens in memory over the whole bank
    try:
        questions = repo.fetch_all_questions()
        all_topics = repo.fetch_topics()
    except BankError as e:
        raise HTTPException(status_code=http_status(e), detail=str(e))

    selection = group_questions(
        questions,
        all_topics,
        years=years,
        topic_ids=topics,
        group_by=group_by,
        sort_by=sort_by,
        settings=settings,
    )
    return selection.to_output()
