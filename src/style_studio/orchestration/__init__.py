"""
Orchestration services for the analysis workflow.

These services hold the deterministic workflow logic: request supersession,
navigation replay and the studio state machine.
"""

from .navigation import NavigationEntry, NavigationHistory
from .request_controller import AnalysisOutcome, AnalysisRequestController
from .result_binder import ResultBinder
from .studio import StudioOrchestrator

__all__ = [
    "NavigationEntry",
    "NavigationHistory",
    "AnalysisOutcome",
    "AnalysisRequestController",
    "ResultBinder",
    "StudioOrchestrator",
]
