"""Paths and default values used across the project."""

# Per-repository data directory
DEVDEMON_DIR_NAME = ".devdemon"

# Files inside the data directory
STATE_FILE_NAME = "state.json"
QUEUE_FILE_NAME = "queue.json"
SETTINGS_FILE_NAME = "settings.json"
PROGRESS_FILE_NAME = "progress.md"
LOG_FILE_NAME = "debug.log"
ROLES_DIR_NAME = "roles"

# Lifecycle store schema tag
STATE_VERSION = 1

# Queue
DEFAULT_MAX_QUEUE_SIZE = 1000
USER_PRIORITY = 0
AUTONOMOUS_PRIORITY = 1

# Roles
DEFAULT_INTERVAL_SECONDS = 300
DEFAULT_MAX_TURNS = 50
DEFAULT_PERMISSION_MODE = "acceptEdits"

# Driver
DEFAULT_MAX_CONSECUTIVE_ERRORS = 5
DEFAULT_BASE_BACKOFF_SECONDS = 5.0
MAX_BACKOFF_SECONDS = 60.0
DEFAULT_STOP_TIMEOUT_SECONDS = 10.0
DEFAULT_EVENT_BUFFER_SIZE = 256

# Prompt builder
RECENT_HISTORY_COUNT = 5
MAX_HISTORY_PROMPT_LENGTH = 100

# Executor
DEFAULT_EXECUTOR_COMMAND = "claude"
EXECUTOR_KILL_GRACE_SECONDS = 5.0

# Display limits
MAX_TASK_PROMPT_LENGTH = 60
MAX_RESULT_PREVIEW_LENGTH = 300
