from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class FilterSpecModel(BaseModel):
    search_term: str = ""
    provider: str = "All"
    year: str = "All"


class LoadTextRequest(BaseModel):
    text: str
    filename: str = "uploaded file"
    has_header: bool = True
    confirm_large: bool = False


class ReferenceQueryModel(BaseModel):
    search_term: str = ""
    panel: str = "All"


class ParseWarningModel(BaseModel):
    row: int
    message: str
    code: str = "RowMalformed"


class LoadResponse(BaseModel):
    source: Optional[str] = None
    records: int
    fields: List[str] = Field(default_factory=list)
    parse_warnings: List[ParseWarningModel] = Field(default_factory=list)
    parse_warning_count: int = 0


class MetaListResponse(BaseModel):
    values: List[str]
