"""
Validation package: structural errors and non-blocking lint warnings.
"""

from .lint import LintEngine, LintReport, LintWarning, WarningCategory

__all__ = ["LintEngine", "LintReport", "LintWarning", "WarningCategory"]
