"""
HTTP endpoints for the AI writing features.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field

from ..core.orchestrator import RequestOrchestrator, UserIdentity, to_payload
from ..core.prompts import DEFAULT_OPTIMIZATION, DEFAULT_TITLE_STYLE
from .auth import get_current_user


router = APIRouter(prefix="/ai", tags=["AI writing"])


class GenerateTitleRequest(BaseModel):
    content: str = Field(..., min_length=1)
    style: Optional[str] = None
    count: Optional[int] = Field(default=None, ge=1)


class OptimizeContentRequest(BaseModel):
    content: str = Field(..., min_length=1)
    targetAudience: Optional[str] = None
    tone: Optional[str] = None
    optimization: Optional[str] = None


class ContentRequest(BaseModel):
    content: str = Field(..., min_length=1)


class SEORequest(BaseModel):
    content: str = Field(..., min_length=1)
    targetKeywords: Optional[List[str]] = None


class BatchProcessRequest(BaseModel):
    content: str = Field(..., min_length=1)
    tasks: List[str] = Field(default_factory=list)


def success_response(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_orchestrator(request: Request) -> RequestOrchestrator:
    return request.app.state.orchestrator


@router.post("/generate-title", summary="Generate article titles")
async def generate_title(
    body: GenerateTitleRequest,
    user: UserIdentity = Depends(get_current_user),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    style = body.style or DEFAULT_TITLE_STYLE
    titles = await orchestrator.generate_titles(user, body.content, style=style, count=body.count)
    return success_response({
        "titles": titles,
        "style": style,
        "generatedAt": _now_iso(),
    })


@router.post("/optimize-content", summary="Rewrite article content")
async def optimize_content(
    body: OptimizeContentRequest,
    user: UserIdentity = Depends(get_current_user),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    optimization = body.optimization or DEFAULT_OPTIMIZATION
    optimized = await orchestrator.optimize_content(
        user,
        body.content,
        target_audience=body.targetAudience,
        tone=body.tone,
        optimization=optimization,
    )
    return success_response({
        "originalContent": body.content,
        "optimizedContent": optimized,
        "optimization": optimization,
        "optimizedAt": _now_iso(),
    })


@router.post("/recommend-style", summary="Recommend layout templates")
async def recommend_style(
    body: ContentRequest,
    user: UserIdentity = Depends(get_current_user),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    recommendations = await orchestrator.recommend_style(user, body.content)
    return success_response({
        "recommendations": to_payload(recommendations),
        "recommendedAt": _now_iso(),
    })


@router.post("/analyze-article", summary="Score article quality")
async def analyze_article(
    body: ContentRequest,
    user: UserIdentity = Depends(get_current_user),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    analysis = await orchestrator.analyze_article(user, body.content)
    return success_response({**analysis.to_dict(), "analyzedAt": _now_iso()})


@router.post("/seo-suggestions", summary="Generate SEO suggestions")
async def seo_suggestions(
    body: SEORequest,
    user: UserIdentity = Depends(get_current_user),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    seo = await orchestrator.seo_suggestions(user, body.content, target_keywords=body.targetKeywords)
    return success_response({**seo.to_dict(), "generatedAt": _now_iso()})


@router.get("/usage-stats", summary="Usage statistics for the caller")
async def usage_stats(
    period: str = Query("day"),
    user: UserIdentity = Depends(get_current_user),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    stats = await orchestrator.usage_stats(user, period)
    return success_response({**stats.to_dict(), "period": period, "queriedAt": _now_iso()})


@router.post("/batch-process", summary="Run several AI features at once")
async def batch_process(
    body: BatchProcessRequest,
    user: UserIdentity = Depends(get_current_user),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    results = await orchestrator.batch_process(user, body.content, body.tasks)
    return success_response({"results": results, "processedAt": _now_iso()})


@router.get("/usage-limits", summary="Quota table for the caller's plan")
async def usage_limits(
    user: UserIdentity = Depends(get_current_user),
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    tier, limits = orchestrator.usage_limits(user)
    return success_response({
        "subscriptionType": tier,
        "limits": limits,
        "queriedAt": _now_iso(),
    })
