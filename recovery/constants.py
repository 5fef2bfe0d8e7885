"""Shared constants for the recovery middleware.

Defaults and calibration values used across modules are defined here.
No magic numbers in other modules — import from here.
"""

# ─── Policy defaults ─────────────────────────────────────────────────────────

# Content-Type written by the default error handler.
DEFAULT_CONTENT_TYPE: str = "application/json"

# Status written by the default error handler (500 Internal Server Error).
DEFAULT_RESPONSE_STATUS: int = 500

# Floor for the traceback capture budget, in bytes.
# stack_size() options at or below this value are ignored.
MINIMUM_STACK_SIZE: int = 4 << 10  # 4 KB

# ─── Trace calibration ───────────────────────────────────────────────────────

# Leading traceback lines produced by the interception machinery itself.
# The guard's own frame is cut at capture time (capture starts one frame below
# the guard), which leaves only the "Traceback (most recent call last):" banner.
# Tied to CPython's traceback formatting — recalibrate if capture changes.
INTERCEPTION_FRAME_LINES: int = 1

# ─── Messages ────────────────────────────────────────────────────────────────

PANIC_PREFIX: str = "panic: "
UNKNOWN_PANIC_MESSAGE: str = "unknown panic"

# Stand-in when the recovered error cannot be rendered with str()
UNPRINTABLE_ERROR_TEXT: str = "<exception str() failed>"

# Smallest possible rendering of one traceback frame: '  File "", line 1, in x\n'
# Bounds how many frames a byte budget can ever display.
MIN_FORMATTED_FRAME_BYTES: int = 24
