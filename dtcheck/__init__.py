"""Formal analysis of decision trees over enumerated-value variables."""

from dtcheck.settings import AnalysisSettings, analysis_settings

__all__ = ["AnalysisSettings", "analysis_settings"]
