"""
Archive analysis pipeline.
Walks an extracted application archive and aggregates its attack surface.
"""

from .runner import ArchiveAnalysisRunner

__all__ = ["ArchiveAnalysisRunner"]
