"""
movsim — Runtime Configuration
==============================

Defaults for the engine, run loop, storage and logging. The CLI exposes
the ones a user is likely to change (--store, --interval, --max-steps,
--log-dir); everything else is a plain module constant.
"""

from pathlib import Path


# =============================================================================
#  ENGINE
# =============================================================================
HISTORY_CAPACITY = 100       # undo depth (steps); oldest entries evicted first


# =============================================================================
#  RUN LOOP
# =============================================================================
RUN_INTERVAL_S = 0.1         # delay between automatic steps (10 steps/s)
JOIN_TIMEOUT_S = 2.0         # how long stop() waits for the run thread


# =============================================================================
#  STORAGE
# =============================================================================
MOVSIM_HOME = Path.home() / ".movsim"
DEFAULT_STORE_DIR = MOVSIM_HOME / "programs"
DEFAULT_SLOT = "current"                 # image autosaved after every change
CLEAR_BACKUP_PREFIX = "before_clear_"    # snapshot taken by clear_program()
IMAGE_FORMAT_VERSION = 1


# =============================================================================
#  LOGGING
# =============================================================================
LOG_DIR = MOVSIM_HOME / "logs"
LOGGER_NAME = "movsim"
