"""Git integration: diff classification, publishing and hooks."""

from .diff import ChangeDetector, DiffAnalyzer, DiffResult
from .hooks import install_pre_commit_hook
from .publisher import Publisher

__all__ = ["ChangeDetector", "DiffAnalyzer", "DiffResult", "Publisher", "install_pre_commit_hook"]
