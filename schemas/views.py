from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, Field

from schemas.display import GroupBy, SortBy

# ---------- Question cards ----------


class LabeledText(BaseModel):
    label: str
    text: str


class CardMetadata(BaseModel):
    year: int
    q_num: int
    hk_percent: Optional[float] = None
    ans: Optional[str] = None


class QuestionCard(BaseModel):
    number: int
    q_id: int
    # exactly one of image / text is set
    image: Optional[str] = None
    text: Optional[str] = None
    statements: List[LabeledText] = Field(default_factory=list)
    choices: List[LabeledText] = Field(default_factory=list)
    metadata: Optional[CardMetadata] = None


class QuestionGroupOut(BaseModel):
    key: Union[int, str]
    cards: List[QuestionCard]


# ---------- Worksheets ----------


class WorksheetRequest(BaseModel):
    title: str = ""
    instructions: str = ""
    include_instructions: bool = False
    topic_ids: List[int] = Field(default_factory=list)
    # None means every year from the first exam year to now
    years: Optional[List[int]] = None
    chapters: List[int] = Field(default_factory=list)
    sort_by: SortBy = SortBy.YEAR_QNUM
    group_by: GroupBy = GroupBy.TOPIC


class WorksheetSection(BaseModel):
    t_id: int
    title: str
    groups: List[QuestionGroupOut]


class WorksheetOut(BaseModel):
    title: str
    instructions: str
    sections: List[WorksheetSection]
    empty: bool
