"""Detection pipeline: per-run session state and the orchestrator."""

from aibom.core.pipeline.orchestrator import Orchestrator
from aibom.core.pipeline.session import AnalysisResult, AnalysisSession

__all__ = ["AnalysisResult", "AnalysisSession", "Orchestrator"]
