"""Horizon focus engine — session state machine, ledger, queries and sync.

Public API re-exports for convenient imports:
    from horizon import open_controller, time_for_task, ManualClock, ...
"""

# Clock & time utilities
from horizon.clock import (
    Clock,
    SystemClock,
    ManualClock,
    to_iso,
    from_iso,
    day_key,
    fmt_duration,
    fmt_countdown,
)

# Configuration
from horizon.config import Durations, Settings, load_settings
from horizon.workspace import (
    workspace_root,
    profile_path,
    storage_dir,
    hooks_config_path,
)

# Ledger & session
from horizon.ledger import MIN_ENTRY_MS, Ledger, TimeEntry
from horizon.session import (
    Phase,
    Session,
    Transition,
    SessionCompleted,
    BreakCompleted,
)

# Models
from horizon.models import AppState, Project, Task

# Queries
from horizon.queries import (
    time_for_task,
    time_for_project,
    focus_today,
    daily_totals,
    longest_streak,
    session_length_buckets,
    top_tasks,
    project_totals,
    hour_heatmap,
    weekly_summary,
    project_totals_today,
    activity_strip,
    project_trends,
)

# Persistence & sync
from horizon.store import BlobStore, MemoryBlobStore, FileBlobStore
from horizon.bridge import SyncBridge, encode_blob, decode_blob

# Controller
from horizon.controller import FocusController, open_controller

# Exports
from horizon.export import export_csv, export_json, markdown_summary, export_filename
