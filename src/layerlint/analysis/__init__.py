"""Analysis orchestration: build, evaluate, advise, cache."""

from .engine import AnalysisResult, Analyzer, Advisor

__all__ = ["Advisor", "AnalysisResult", "Analyzer"]
