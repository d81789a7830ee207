from fastapi import APIRouter, HTTPException, Depends, Query, Response
from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from datetime import datetime
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_db
from query_tools.audit_logger import AuditLogger
from services.auth import require_authenticated, User
from services.config import Settings, get_settings
from services.query_service import QueryErrorKind, QueryRequest, QueryService

router = APIRouter()
logger = structlog.get_logger()

APP_VERSION = "1.0.0"


class HealthResponse(BaseModel):
    status: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(status="healthy", version=APP_VERSION)


class RunQueryRequest(BaseModel):
    prompt: str = ""
    tables: List[str] = Field(default_factory=list)
    use_cache: bool = True


class RunQueryResponse(BaseModel):
    error: str
    query: str
    rows: List[Dict[str, Any]]
    columns: List[str]
    rendered_text: str
    tokens_used: int
    cached: bool
    log_id: Optional[int] = None


class HistoryEntry(BaseModel):
    id: int
    tables: List[str]
    prompt: str
    query: str
    tokens_used: int
    created_at: datetime
    last_used_at: datetime


class HistoryResponse(BaseModel):
    logs: List[HistoryEntry]


def get_query_service(
    session: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> QueryService:
    return QueryService(settings, session)


@router.post("/query", response_model=RunQueryResponse)
async def run_query(
    request: RunQueryRequest,
    response: Response,
    service: QueryService = Depends(get_query_service),
    user: User = Depends(require_authenticated)
):
    """
    Translate a natural-language question over the selected tables into SQL,
    run it against the live database and return the rows.

    Failures keep the response shape: 400 for missing input, 503 when the
    translation or the execution failed.
    """
    try:
        result = await service.run(
            QueryRequest(prompt=request.prompt, tables=request.tables, use_cache=request.use_cache)
        )
    except Exception as e:
        logger.error("Query pipeline failed", error=str(e), user_id=user.id)
        raise HTTPException(status_code=500, detail=str(e))

    if result.error_kind == QueryErrorKind.INPUT:
        response.status_code = 400
    elif result.error_kind is not None:
        response.status_code = 503

    return RunQueryResponse(
        error=result.error,
        query=result.query,
        rows=result.rows,
        columns=result.columns,
        rendered_text=result.rendered_text,
        tokens_used=result.tokens_used,
        cached=result.cached,
        log_id=result.log_id
    )


@router.get("/history", response_model=HistoryResponse)
async def list_history(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    session: AsyncSession = Depends(get_db),
    user: User = Depends(require_authenticated)
):
    logs = await AuditLogger(session).list_history(limit=limit)
    return HistoryResponse(
        logs=[
            HistoryEntry(
                id=log.id,
                tables=log.tables.split(",") if log.tables else [],
                prompt=log.prompt,
                query=log.query,
                tokens_used=log.tokensUsed,
                created_at=log.createdAt,
                last_used_at=log.lastUsedAt
            )
            for log in logs
        ]
    )


@router.post("/history/{log_id}/hide", status_code=204)
async def hide_history_entry(
    log_id: int,
    session: AsyncSession = Depends(get_db),
    user: User = Depends(require_authenticated)
):
    hidden = await AuditLogger(session).hide(log_id)
    if not hidden:
        raise HTTPException(status_code=404, detail="History entry not found")
    logger.info("History entry hidden", log_id=log_id, user_id=user.id)
    return Response(status_code=204)
