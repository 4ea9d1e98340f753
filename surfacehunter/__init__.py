"""
SurfaceHunter - static attack-surface analysis for mobile application
archives and live web applications.
"""

from surfacehunter.engine import SurfaceEngine, analyze_archive, scan_web_app

__version__ = "1.0.0"

__all__ = ["SurfaceEngine", "analyze_archive", "scan_web_app"]
