"""API-specific dependencies."""

# Re-export common dependencies
from .dependencies import (
    get_capture_service,
    get_current_user_id,
    get_dispatcher,
    get_import_service,
    get_job_service,
    get_queue_processor,
    get_service_cache,
    get_settings_dependency,
    get_thinking_time_service,
    require_admin,
)

__all__ = [
    "get_capture_service",
    "get_current_user_id",
    "get_dispatcher",
    "get_import_service",
    "get_job_service",
    "get_queue_processor",
    "get_service_cache",
    "get_settings_dependency",
    "get_thinking_time_service",
    "require_admin",
]
