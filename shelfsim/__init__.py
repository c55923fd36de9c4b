"""
shelfsim - digital shelf surveys with conjoint price testing

Build choice cards from a shelf of priced products, collect answers from
human panelists or AI-simulated personas, and analyze preference share and
price response.  The survey engine is frontend-agnostic and is driven by
both the web app and the CLI.
"""

from shelfsim.analysis import RunAnalysis, analyze_run
from shelfsim.engine import SurveyEngine
from shelfsim.models import AnswerType, RespondentType
from shelfsim.schemas import SurveyDefinition, SurveyStage

__all__ = [
    "AnswerType",
    "RespondentType",
    "SurveyDefinition",
    "SurveyStage",
    "SurveyEngine",
    "RunAnalysis",
    "analyze_run",
]
