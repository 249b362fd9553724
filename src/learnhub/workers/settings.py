"""arq worker settings module.

Import path for arq CLI: arq learnhub.workers.settings.WorkerSettings
"""

from __future__ import annotations

from learnhub.workers.notification_dispatcher import WorkerSettings

__all__ = ["WorkerSettings"]
