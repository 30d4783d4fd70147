"""prisemux configuration

Settings are grouped as:
- Connection: socket path, reconnect policy, read size
- RPC: request timeout
- Keybindings: prefix chord and its timeout
- Rendering: default colors, default grid size
- Logging / metrics
"""

import os

# === Connection ===
SOCKET_ENV_VAR = "PRISE_SOCKET"  # overrides the default socket path
SOCKET_PATH_TEMPLATE = "/tmp/prise-{uid}.sock"
READ_CHUNK_SIZE = 64 * 1024  # bytes per socket read

RECONNECT_MAX_ATTEMPTS = 5
RECONNECT_BASE_DELAY_SECONDS = 1.0  # delay = base * attempt number

# === RPC ===
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("PRISEMUX_REQUEST_TIMEOUT", "30"))

# === Inbound event queue ===
EVENT_QUEUE_MAX_SIZE = 1024
EVENT_QUEUE_HIGH_WATERMARK = 0.75

# === Keybindings ===
PREFIX_KEY = "b"  # used with ctrl: Ctrl+b
PREFIX_TIMEOUT_SECONDS = 2.0

# === Rendering ===
DEFAULT_FG = (220, 220, 220)
DEFAULT_BG = (0, 0, 0)
DEFAULT_ROWS = 24
DEFAULT_COLS = 80
MACOS_OPTION_AS_ALT = False

# === Session picker ===
PICKER_MAX_HEIGHT = 10

# === Logging ===
LOG_LEVEL = os.environ.get("PRISEMUX_LOG_LEVEL", "INFO")

# === Metrics ===
METRICS_ENABLED = True


def default_socket_path() -> str:
    """Socket path from $PRISE_SOCKET, else /tmp/prise-<uid>.sock."""
    env = os.environ.get(SOCKET_ENV_VAR)
    if env:
        return env
    uid = os.getuid() if hasattr(os, "getuid") else 1000
    return SOCKET_PATH_TEMPLATE.format(uid=uid)
