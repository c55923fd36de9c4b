"""
Web frontend and JSON API for shelfsim.

``create_app`` wires the API routers, the uploads mount and the HTML survey
that human panelists take.  The HTML survey keeps one ``SurveyEngine`` per
browser in memory, keyed by a cookie, and stores the respondent once the
last card is answered.
"""

from __future__ import annotations

import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from sqlalchemy.engine import Engine

from shelfsim import services
from shelfsim.auth import SessionStore
from shelfsim.config import Settings, get_settings
from shelfsim.db import create_db_engine, init_db
from shelfsim.engine import SurveyEngine
from shelfsim.errors import InvalidAnswerError, ShelfSimError
from shelfsim.logging_config import get_logger
from shelfsim.models import AnswerType
from shelfsim.schemas import ChoiceQuestion, DemographicQuestion
from shelfsim.themes import load_theme
from web.deps import SessionDep, SettingsDep
from web.routers import (
    auth,
    dashboard,
    personas,
    products,
    questions,
    shelves,
    simulate,
    surveys,
    themes,
    users,
)

logger = get_logger(__name__)

WEB_DIR = Path(__file__).parent
TEMPLATES_DIR = WEB_DIR / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

SURVEY_COOKIE = "shelfsim_survey"


# ---------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------

async def shelfsim_error_handler(request: Request, exc: ShelfSimError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log any unhandled exception under an id the client can report."""
    error_id = uuid.uuid4().hex[:12]
    logger.error(
        "Unhandled exception [%s] in %s %s: %s",
        error_id, request.method, request.url.path, exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "error_type": type(exc).__name__,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShelfSimError, shelfsim_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)


# ---------------------------------------------------------------------
# HTML survey helpers
# ---------------------------------------------------------------------

def _survey_session(request: Request) -> Optional[dict[str, Any]]:
    sid = request.cookies.get(SURVEY_COOKIE)
    if not sid:
        return None
    return request.app.state.survey_sessions.get(sid)


def _drop_stale_surveys(surveys: dict[str, dict[str, Any]], max_age: int) -> None:
    """Forget survey sessions started more than *max_age* seconds ago."""
    cutoff = time.time() - max_age
    for sid in [sid for sid, state in surveys.items() if state["started_at"] < cutoff]:
        del surveys[sid]


def _expired(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "expired.html", {}, status_code=404)


def _question_response(
    request: Request,
    engine: SurveyEngine,
    *,
    error: Optional[str] = None,
) -> HTMLResponse:
    q = engine.get_current_question()
    ctx: dict[str, Any] = {
        "question": q,
        "progress": engine.progress,
        "project_name": engine.definition.project_name,
        "error": error,
    }
    status = 400 if error else 200

    if isinstance(q, DemographicQuestion):
        ctx["multiple"] = q.question.type == AnswerType.MULTIPLE
        return templates.TemplateResponse(request, "question.html", ctx, status_code=status)
    if isinstance(q, ChoiceQuestion):
        return templates.TemplateResponse(request, "choice.html", ctx, status_code=status)
    raise RuntimeError(f"Unexpected question type: {type(q).__name__}")


# ---------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------

def create_app(
    settings: Optional[Settings] = None,
    *,
    engine: Optional[Engine] = None,
    seed: Optional[int] = None,
) -> FastAPI:
    settings = settings or get_settings()
    engine = engine or create_db_engine(settings.database_url)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting shelfsim server")
        init_db(engine)
        yield
        logger.info("Shutting down shelfsim server")

    app = FastAPI(title="shelfsim", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.sessions = SessionStore(settings.session_max_age)
    app.state.survey_sessions = {}
    app.state.seed = seed

    setup_exception_handlers(app)

    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith("/api"):
            duration_ms = (time.perf_counter() - start) * 1000
            logger.info(
                "%s %s %s in %.0fms",
                request.method, request.url.path, response.status_code, duration_ms,
            )
        return response

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(upload_dir)), name="uploads")

    for module in (auth, users, products, shelves, personas, questions, surveys, simulate, dashboard, themes):
        app.include_router(module.router)

    # --------------------------------------------------
    # Theme
    # --------------------------------------------------

    @app.get("/theme.json")
    def theme_json(settings: SettingsDep) -> dict[str, Any]:
        return load_theme(Path(settings.theme_path))

    # --------------------------------------------------
    # HTML survey
    # --------------------------------------------------

    @app.get("/survey/question", response_class=HTMLResponse)
    def question_page(request: Request):
        state = _survey_session(request)
        if state is None:
            return _expired(request)

        engine: SurveyEngine = state["engine"]
        if engine.is_complete:
            return RedirectResponse(url="/survey/complete", status_code=303)
        return _question_response(request, engine)

    @app.post("/survey/answer")
    async def submit_answer(request: Request, session: SessionDep):
        state = _survey_session(request)
        if state is None:
            return _expired(request)

        engine: SurveyEngine = state["engine"]
        if engine.is_complete:
            return RedirectResponse(url="/survey/complete", status_code=303)

        form = await request.form()
        q = engine.get_current_question()

        if isinstance(q, DemographicQuestion):
            if q.question.type == AnswerType.MULTIPLE:
                answer: Any = form.getlist("answer")
            else:
                answer = form.get("answer")
        else:
            answer = form.get("chosen")

        if answer is None or answer == "":
            return _question_response(request, engine, error="Please answer the question.")

        try:
            engine.submit_answer(answer)
        except InvalidAnswerError as exc:
            return _question_response(request, engine, error=exc.message)

        if engine.is_complete:
            results = engine.get_results()
            respondent = services.record_human_response(
                session,
                state["variant_id"],
                results["raw_answers"],
                results["selections"],
            )
            state["respondent_id"] = respondent.id
            return RedirectResponse(url="/survey/complete", status_code=303)

        return RedirectResponse(url="/survey/question", status_code=303)

    @app.get("/survey/complete", response_class=HTMLResponse)
    def complete_page(request: Request):
        state = _survey_session(request)
        if state is None:
            return _expired(request)

        engine: SurveyEngine = state["engine"]
        if not engine.is_complete:
            return RedirectResponse(url="/survey/question", status_code=303)

        request.app.state.survey_sessions.pop(request.cookies.get(SURVEY_COOKIE), None)
        response = templates.TemplateResponse(
            request,
            "complete.html",
            {
                "project_name": engine.definition.project_name,
                "respondent_id": state.get("respondent_id"),
                "progress": 100,
            },
        )
        response.delete_cookie(SURVEY_COOKIE)
        return response

    @app.get("/survey/{variant_id}", response_class=HTMLResponse)
    def welcome(request: Request, variant_id: int, session: SessionDep):
        definition = services.load_survey_definition(session, variant_id)
        return templates.TemplateResponse(
            request,
            "welcome.html",
            {
                "variant_id": variant_id,
                "project_name": definition.project_name,
                "n_questions": len(definition.questions),
                "n_cards": len(definition.product_combinations),
            },
        )

    @app.post("/survey/{variant_id}/start")
    def start(request: Request, variant_id: int, session: SessionDep, settings: SettingsDep):
        definition = services.load_survey_definition(
            session, variant_id, seed=request.app.state.seed
        )
        _drop_stale_surveys(request.app.state.survey_sessions, settings.session_max_age)
        sid = uuid.uuid4().hex
        request.app.state.survey_sessions[sid] = {
            "engine": SurveyEngine(definition),
            "variant_id": variant_id,
            "started_at": time.time(),
        }
        logger.info("Started human survey session on variant %s", variant_id)

        response = RedirectResponse(url="/survey/question", status_code=303)
        response.set_cookie(SURVEY_COOKIE, sid, httponly=True, samesite="lax")
        return response

    return app
