from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RootRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    label: str
    sha256_fingerprint: str = Field(default="", alias="sha256Fingerprint")


class RootHashesDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    roots: List[RootRecord]
    max_bin: int = Field(alias="maxBin", ge=0)


class SourceView(BaseModel):
    source_id: str
    channel: str
    version: str
    enabled: bool
    status: str


class RowViewModel(BaseModel):
    row_id: str
    position: int
    entity_index: Optional[int] = None
    label: str = ""
    successes: int = 0
    failures: int = 0
    status: str = ""


class SeriesPoint(BaseModel):
    timestamp: int
    count: int


class EntityDetail(BaseModel):
    index: int
    label: str
    display_label: str
    fingerprint: str
    successes: int
    failures: int
    success_series: List[SeriesPoint] = Field(default_factory=list)
    failure_series: List[SeriesPoint] = Field(default_factory=list)


class RowsResponse(BaseModel):
    sort_key: str
    direction: int
    rows: List[RowViewModel]
