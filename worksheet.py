from __future__ import annotations

import logging
from typing import Optional

from errors import InvalidInputError
from repository import Repository
from schemas.display import DisplaySettings
from schemas.views import WorksheetOut, WorksheetRequest, WorksheetSection
from selection import filter_topics_by_chapters, group_questions, year_options

logger = logging.getLogger("mcq-bank.worksheet")

DEFAULT_INSTRUCTIONS = """>這是你用來編寫工作紙指示的格式（Markdown）的方法。
# Markdown 簡單使用方法：
## 標題
* Hash sign(#)，之後加一個空格，用來表示標題。
* 兩個 Hash sign(\\#\\#) 用來表示第二級標題，如此類推。
## 平時打字
與平時**無異**，除了*換行前*要加***兩個空格***。
就好像這樣。
## 列表
1. 第一點
1. 第二點
* 第一點
* 第二點
## 數學式
數學公式：@@a^2+2ab+b^2##
"""


def resolve_instructions(request: WorksheetRequest) -> str:
    if not request.include_instructions:
        return ""
    return request.instructions or DEFAULT_INSTRUCTIONS


def build_worksheet(
    repo: Repository,
    request: WorksheetRequest,
    settings: Optional[DisplaySettings] = None,
) -> WorksheetOut:
    """
    One section per selected topic, in selection order. Each section holds the
    questions of that topic in the selected years, grouped and sorted.
    """
    settings = settings or DisplaySettings()
    topics = repo.fetch_topics()

    allowed = {t.t_id for t in filter_topics_by_chapters(topics, request.chapters)}
    topic_ids = [t for t in request.topic_ids if t in allowed]
    if not topic_ids:
        raise InvalidInputError(key="noTopicSelected")

    years = request.years if request.years is not None else year_options()
    by_id = {t.t_id: t for t in topics}

    sections = []
    for t_id in topic_ids:
        topic = by_id.get(t_id)
        questions = repo.fetch_worksheet_questions(years, t_id)
        selection = group_questions(
            questions,
            topics,
            group_by=request.group_by,
            sort_by=request.sort_by,
            settings=settings,
        )
        title = f"{topic.title_c} ({topic.title_e})" if topic else f"Topic {t_id}"
        sections.append(WorksheetSection(t_id=t_id, title=title, groups=selection.to_output()))

    empty = all(not s.groups for s in sections)
    if empty:
        logger.info("worksheet for topics %s and %d years has no questions", topic_ids, len(years))
    return WorksheetOut(
        title=request.title,
        instructions=resolve_instructions(request),
        sections=sections,
        empty=empty,
    )
