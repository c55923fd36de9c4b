"""
Survey endpoints.

The two ``/api/survey/{id}`` routes are public: panelists load and submit
surveys without an account.  Everything else needs a logged-in user.
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Response

from shelfsim import services
from shelfsim.io import render_export
from shelfsim.logging_config import get_logger
from shelfsim.schemas import RunSurveyRequest, SurveyDefinition, SurveySubmission
from web.deps import CurrentUser, SessionDep, SettingsDep, SimulatorDep

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["surveys"])

EXPORT_MEDIA_TYPES = {"json": "application/json", "csv": "text/csv"}


# ---------------------------------------------------------------------
# Public survey
# ---------------------------------------------------------------------

@router.get("/survey/{variant_id}", response_model=SurveyDefinition)
def get_survey(variant_id: int, session: SessionDep) -> SurveyDefinition:
    return services.load_survey_definition(session, variant_id)


@router.post("/survey/{variant_id}/submit")
def submit_survey(variant_id: int, body: SurveySubmission, session: SessionDep) -> dict[str, Any]:
    respondent = services.record_human_response(
        session, variant_id, body.demographics, body.selections
    )
    return {
        "message": "Survey responses recorded successfully",
        "respondent_id": respondent.id,
    }


# ---------------------------------------------------------------------
# Running surveys
# ---------------------------------------------------------------------

@router.get("/active-surveys")
def active_surveys(session: SessionDep, _user: CurrentUser) -> list[dict[str, Any]]:
    return [
        {
            "id": run["id"],
            "shelf_id": run["shelf_id"],
            "project_name": run["project_name"],
            "created_at": run["date"],
        }
        for run in services.list_survey_runs(session)
    ]


@router.post("/shelves/{shelf_id}/run-survey")
def run_survey(
    shelf_id: int,
    body: RunSurveyRequest,
    session: SessionDep,
    settings: SettingsDep,
    simulator: SimulatorDep,
    user: CurrentUser,
) -> dict[str, Any]:
    shelf = services.get_owned_shelf(session, shelf_id, user.id)
    return services.run_synthetic_survey(
        session,
        shelf,
        simulator,
        body.run_name,
        max_tasks=settings.max_choice_tasks or None,
    )


@router.post("/shelves/{shelf_id}/create-survey")
def create_survey(shelf_id: int, session: SessionDep, user: CurrentUser) -> dict[str, int]:
    shelf = services.get_owned_shelf(session, shelf_id, user.id)
    variant = services.create_survey_variant(session, shelf)
    return {"survey_id": variant.id}


# ---------------------------------------------------------------------
# Runs
# ---------------------------------------------------------------------

@router.get("/survey-runs")
def survey_runs(session: SessionDep, _user: CurrentUser) -> list[dict[str, Any]]:
    return services.list_survey_runs(session)


@router.get("/survey-runs/{run_id}/analysis")
def run_analysis(run_id: int, session: SessionDep, _user: CurrentUser) -> dict[str, Any]:
    return services.compute_run_analysis(session, run_id).to_dict()


@router.get("/survey-runs/{run_id}/details")
def run_details(run_id: int, session: SessionDep, _user: CurrentUser) -> list[dict[str, Any]]:
    return services.run_details(session, run_id)


@router.get("/survey-runs/{run_id}/export")
def export_run(
    run_id: int,
    session: SessionDep,
    _user: CurrentUser,
    format: Literal["json", "csv"] = "json",
) -> Response:
    analysis = services.compute_run_analysis(session, run_id)
    return Response(
        content=render_export(analysis, format),
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="run{run_id}.{format}"'},
    )
