# src/shipping_rate_analysis/__init__.py
from .pipelines.analysis_processor import AnalysisProcessor, AnalysisResult
from .pipelines.finalizer import finalize_analysis

__all__ = [
    "AnalysisProcessor",
    "AnalysisResult",
    "finalize_analysis",
]
