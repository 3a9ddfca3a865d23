"""
UI Layer - Rich console, error display and record renderings.
"""

from otakuhub.ui.console import get_console, setup_console
from otakuhub.ui.error_handler import handle_error, display_warning, display_info
from otakuhub.ui.components import (
    catalog_table,
    chapter_panel,
    detail_panel,
    schedule_table,
    search_tables,
    sources_table,
    stream_table,
)

__all__ = [
    # Console Management
    "get_console",
    "setup_console",
    # Error Handling
    "handle_error",
    "display_warning",
    "display_info",
    # Components
    "catalog_table",
    "chapter_panel",
    "detail_panel",
    "schedule_table",
    "search_tables",
    "sources_table",
    "stream_table",
]
