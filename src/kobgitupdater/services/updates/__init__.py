"""Update decision and orchestration."""

from .service import UpdateService, get_update_service
from .version import compare_versions, decide

__all__ = ["UpdateService", "get_update_service", "compare_versions", "decide"]
