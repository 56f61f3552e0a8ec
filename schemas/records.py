# Typed views of the documents stored in the topics, subtopics, questions and
# textbooks collections. Field aliases are the stored (camelCase) field names.
from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


def derive_st_id(t_id: int, st_seq: int) -> int:
    return t_id * 100 + st_seq


class Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Document id in the store; never written into the document itself
    id: Optional[str] = None

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"id"})


class Topic(Record):
    t_id: int = Field(alias="tId")
    title_e: str = Field("", alias="tTitleE")
    title_c: str = Field("", alias="tTitleC")
    is_junior: bool = Field(False, alias="isJunior")
    aristo: Optional[Union[int, float]] = None


class Subtopic(Record):
    t_id: int = Field(alias="tId")
    st_seq: int = Field(alias="stSeq", ge=1)
    st_id: int = Field(alias="stId")
    title_c: Optional[str] = Field(None, alias="stTitleC")
    title_e: Optional[str] = Field(None, alias="stTitleE")

    @model_validator(mode="after")
    def _st_id_is_derived(self) -> "Subtopic":
        if self.st_id != derive_st_id(self.t_id, self.st_seq):
            raise ValueError(f"stId {self.st_id} does not match tId*100+stSeq")
        return self


class Question(Record):
    q_id: int = Field(alias="qId")
    year: int
    paper: int = 1
    q_num: int = Field(alias="qNum")
    q_text: str = Field("", alias="qText")
    is_statements: bool = Field(False, alias="isStatements")
    statements: List[str] = Field(default_factory=list)
    choices: List[str] = Field(default_factory=list)
    has_image: bool = Field(False, alias="hasImage")
    t_id: List[int] = Field(default_factory=list, alias="tId")
    st_ids: Optional[List[int]] = Field(None, alias="stIds")
    ans: str = ""
    hk_percent: Optional[float] = Field(None, alias="hkPercent")

    @model_validator(mode="after")
    def _statements_present(self) -> "Question":
        if self.is_statements and not self.statements:
            raise ValueError("isStatements requires at least one statement")
        return self


class Chapter(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    c_num: int = Field(0, alias="cNum")
    title_c: str = Field("", alias="chTitleC")
    title_e: str = Field("", alias="chTitleE")


class Textbook(Record):
    tb_id: str = Field(alias="tbId")
    title_c: str = Field("", alias="tbTitleC")
    title_e: str = Field("", alias="tbTitleE")
    publisher: str = ""
    is_junior: bool = Field(False, alias="isJunior")
    chapters: List[Chapter] = Field(default_factory=list)

    def sorted_chapters(self) -> List[Chapter]:
        return sorted(self.chapters, key=lambda c: c.c_num)
