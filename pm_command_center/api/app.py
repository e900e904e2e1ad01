from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from pm_command_center.domain.estimation import EstimationModel, EstimationResult
from pm_command_center.domain.issues import Platform, UnifiedIssue
from pm_command_center.estimation.engine import EstimationEngine
from pm_command_center.estimation.similarity import HistoricalIssue
from pm_command_center.estimation.trained import estimate_with_model
from pm_command_center.gaps.analyzer import analyze_backlog
from pm_command_center.integration.platform_manager import PlatformManager


class HistoricalStory(BaseModel):
    title: str
    body: str = ""
    labels: list[str] = Field(default_factory=list)
    story_points: float | None = None


class EstimateRequest(BaseModel):
    title: str = Field(..., description="Story title")
    description: str | None = None
    labels: list[str] = Field(default_factory=list)
    history: list[HistoricalStory] | None = Field(
        None, description="Completed stories to compare against; defaults to the server's history"
    )


class EstimateResponse(BaseModel):
    points: int
    label: str
    estimated_days: int
    confidence: int
    based_on: str
    factors: list[str]
    warnings: list[str]
    similar_issues: list[dict[str, Any]]
    breakdown: dict[str, Any] | None = None
    is_heuristic: bool = False


class ModelResponse(BaseModel):
    has_enough_data: bool
    sample_size: int
    scope: str
    learned_from: str
    avg_cycle_time_by_type: dict[str, float]
    complexity_multipliers: dict[str, float]
    points_to_days_ratio: float
    pointed_issues_count: int
    errors: list[dict[str, str]] = Field(default_factory=list)


class StoryIn(BaseModel):
    id: str = Field(..., description="Issue identifier, e.g. github-42")
    title: str
    description: str = ""
    labels: list[str] = Field(default_factory=list)
    url: str = ""
    platform: Platform = Platform.GITHUB


class GapsRequest(BaseModel):
    stories: list[StoryIn]


def _estimate_response(result: EstimationResult) -> EstimateResponse:
    return EstimateResponse(
        points=result.points,
        label=result.label,
        estimated_days=result.estimated_days,
        confidence=result.confidence,
        based_on=result.based_on,
        factors=list(result.factors),
        warnings=list(result.warnings),
        similar_issues=[asdict(s) for s in result.similar_issues],
        breakdown=asdict(result.breakdown) if result.breakdown is not None else None,
        is_heuristic=result.is_heuristic,
    )


def _model_response(model: EstimationModel, errors: list[Any]) -> ModelResponse:
    return ModelResponse(
        has_enough_data=model.has_enough_data,
        sample_size=model.sample_size,
        scope=model.scope,
        learned_from=model.learned_from,
        avg_cycle_time_by_type={t.value: v for t, v in model.avg_cycle_time_by_type.items()},
        complexity_multipliers=dict(model.complexity_multipliers),
        points_to_days_ratio=model.points_to_days_ratio,
        pointed_issues_count=model.pointed_issues_count,
        errors=[asdict(e) for e in errors],
    )


def create_app(
    engine: EstimationEngine | None = None,
    manager: PlatformManager | None = None,
) -> FastAPI:
    app = FastAPI(title="PM Command Center")
    engine = engine or EstimationEngine()

    def require_manager() -> PlatformManager:
        if manager is None or not manager.connectors:
            raise HTTPException(status_code=503, detail="No platforms configured")
        return manager

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "platforms": manager.platforms if manager is not None else [],
            "history_size": engine.history_size,
        }

    @app.post("/estimate", response_model=EstimateResponse)
    def estimate(req: EstimateRequest) -> EstimateResponse:
        scorer = engine
        if req.history is not None:
            scorer = EstimationEngine()
            scorer.load_historical_data(
                HistoricalIssue(
                    title=h.title,
                    body=h.body,
                    labels=tuple(h.labels),
                    story_points=h.story_points,
                )
                for h in req.history
            )
        return _estimate_response(scorer.estimate(req.title, req.description, req.labels))

    @app.get("/model", response_model=ModelResponse)
    async def model() -> ModelResponse:
        built, errors = await require_manager().build_cross_org_model()
        return _model_response(built, errors)

    @app.post("/estimate/model", response_model=EstimateResponse)
    async def estimate_from_model(req: EstimateRequest) -> EstimateResponse:
        built, _ = await require_manager().build_cross_org_model()
        return _estimate_response(
            estimate_with_model(req.title, req.description, req.labels, built)
        )

    @app.post("/gaps")
    def gaps(req: GapsRequest) -> dict[str, Any]:
        issues = [
            UnifiedIssue(
                id=s.id,
                external_id=s.id,
                platform=s.platform,
                title=s.title,
                description=s.description,
                labels=tuple(s.labels),
                url=s.url,
            )
            for s in req.stories
        ]
        reports, summary = analyze_backlog(issues)
        return {
            "summary": asdict(summary),
            "stories": [
                {
                    "issue_id": r.issue_id,
                    "title": r.title,
                    "url": r.url,
                    "score": r.score,
                    "gaps": [asdict(g) for g in r.gaps],
                }
                for r in reports
            ],
        }

    return app
