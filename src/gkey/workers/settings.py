"""arq worker settings module.

Import path for arq CLI: arq gkey.workers.settings.WorkerSettings
"""

from __future__ import annotations

from gkey.keys.worker import KeyWorkerSettings as WorkerSettings

__all__ = ["WorkerSettings"]
