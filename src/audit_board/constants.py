STATE_DIR_NAME = ".audit_board"
STATE_FILE = "state.json"
CONFIG_FILE = "config.yaml"
LOCK_FILE = ".lock"

STATE_VERSION = 1
EXPORT_VERSION = 1
WINDOWS_LOCK_BYTES = 4096

# Single-user board: every audit event carries the same actor.
ACTOR_LABEL = "local-user"

# Synthetic task ids for state-level audit events.
AUDIT_MODE_MARKER = "AUDIT_MODE"
IMPORT_MARKER = "IMPORT"

SUMMARY_RECENT_EVENTS = 5
DUE_WEEK_DAYS = 7

LOG_LEVEL_ENV_VAR = "AUDIT_BOARD_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8000
