from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from schemas.records import Textbook


class TopicPatch(BaseModel):
    """Partial topic update; only fields that were sent are written."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    title_c: Optional[str] = Field(None, alias="tTitleC")
    title_e: Optional[str] = Field(None, alias="tTitleE")
    is_junior: Optional[bool] = Field(None, alias="isJunior")
    aristo: Optional[Union[int, float]] = None


class TopicsPatchIn(BaseModel):
    # keyed by tId
    topics: Dict[int, TopicPatch]


class SubtopicIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title_c: str = Field(alias="stTitleC")
    title_e: str = Field(alias="stTitleE")


class AssignmentsIn(BaseModel):
    # question document id -> full replacement stIds array
    assignments: Dict[str, List[int]]


class WriteResult(BaseModel):
    ok: bool = True
    written: int


class ReloadResult(BaseModel):
    ok: bool = True
    counts: Dict[str, int]


class TextbookUpdateIn(Textbook):
    # the path carries the id; a tbId in the body is ignored
    tb_id: str = Field("", alias="tbId")
