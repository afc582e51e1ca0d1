"""Dashboard routes: rows, sources, sorting and entity detail."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..dashboard import Dashboard
from ..model import (
    EntityNotFoundError,
    UnknownMetricError,
    UnknownSortKeyError,
    UnknownSourceError,
    make_source_id,
)
from ..schemas import EntityDetail, RowsResponse, SeriesPoint, SourceView

router = APIRouter(prefix="/api")


def get_dashboard(request: Request) -> Dashboard:
    dashboard = getattr(request.app.state, "dashboard", None)
    if dashboard is None:
        raise HTTPException(status_code=503, detail="Registry not loaded yet")
    return dashboard


def _rows_response(dashboard: Dashboard) -> RowsResponse:
    return RowsResponse(
        sort_key=dashboard.sort_state.key.value,
        direction=dashboard.sort_state.direction,
        rows=dashboard.row_models(),
    )


@router.get("/rows", response_model=RowsResponse)
def list_rows(dashboard: Dashboard = Depends(get_dashboard)) -> RowsResponse:
    if dashboard.render_count == 0:
        dashboard.render()
    return _rows_response(dashboard)


@router.get("/sources", response_model=List[SourceView])
def list_sources(dashboard: Dashboard = Depends(get_dashboard)) -> List[SourceView]:
    return dashboard.source_models()


@router.post("/sources/{channel}/{version}/toggle", response_model=RowsResponse)
def toggle_source(
    channel: str,
    version: str,
    enabled: Optional[bool] = Query(default=None),
    dashboard: Dashboard = Depends(get_dashboard),
) -> RowsResponse:
    try:
        dashboard.toggle_source(make_source_id(channel, version), enabled)
    except UnknownSourceError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return _rows_response(dashboard)


@router.post("/sort/{key}", response_model=RowsResponse)
def select_sort(key: str, dashboard: Dashboard = Depends(get_dashboard)) -> RowsResponse:
    try:
        dashboard.select_sort(key)
    except UnknownSortKeyError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _rows_response(dashboard)


@router.get("/entities/{index}", response_model=EntityDetail)
def entity_detail(index: int, dashboard: Dashboard = Depends(get_dashboard)) -> EntityDetail:
    try:
        return dashboard.detail(index)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@router.get("/entities/{index}/series", response_model=List[SeriesPoint])
def entity_series(
    index: int,
    metric: str = Query(default="success"),
    dashboard: Dashboard = Depends(get_dashboard),
) -> List[SeriesPoint]:
    try:
        return dashboard.time_series(index, metric)
    except EntityNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except UnknownMetricError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.post("/rows/{position}/select", response_model=EntityDetail)
def select_row(position: int, dashboard: Dashboard = Depends(get_dashboard)) -> EntityDetail:
    try:
        detail = dashboard.select_row(position)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if detail is None:
        raise HTTPException(status_code=404, detail=f"Row {position} is empty")
    return detail
