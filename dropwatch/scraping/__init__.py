"""
Order page scraping: markup extraction, phase classification and the
shared browser session pool.
"""

from dropwatch.scraping.extractor import extract
from dropwatch.scraping.phase import classify_phase, resolve_phase

__all__ = ["classify_phase", "extract", "resolve_phase"]
