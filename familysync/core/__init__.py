"""Core module - Settings, error taxonomy, and logging setup.

Note: Dependencies (deps.py) are imported lazily to avoid circular
imports. Import them directly where needed:

    from familysync.core.deps import get_container, CoordinatorDep
    from familysync.core.exceptions import AuthenticationFailedError
"""

from familysync.core.config import settings

__all__ = [
    "settings",
]
