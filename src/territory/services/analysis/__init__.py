"""Analysis orchestration."""

from .pipeline import AnalysisOptions, AnalysisResult, ProgressUpdate, run_analysis
from .worker import AnalysisJobRegistry, AnalysisWorker, JobStatus, WorkerMessage

__all__ = [
    "AnalysisJobRegistry",
    "AnalysisOptions",
    "AnalysisResult",
    "AnalysisWorker",
    "JobStatus",
    "ProgressUpdate",
    "WorkerMessage",
    "run_analysis",
]
