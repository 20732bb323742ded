"""
Analysis models package.
"""
from website_improver.features.analysis.models.analysis_job import AnalysisJob, AnalysisJobStatus

__all__ = ["AnalysisJob", "AnalysisJobStatus"]
