"""
Gazette Matcher - reconcile Kenya Gazette estate notices against a registry.

Architecture: Extract (notices) + Resolve (registry rows) → Match → Decide → Persist
Philosophy:  Extraction and matching are pure. Only the store touches disk.
"""

__version__ = "1.0.0"

from .extractor import extract
from .fields import resolve_name
from .matcher import match
from .pipeline import GazetteReconciler

__all__ = ["GazetteReconciler", "extract", "match", "resolve_name", "__version__"]
