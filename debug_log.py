import os
from pathlib import Path

# Always write logs next to this file unless TRACKER_LOG_FILE points elsewhere
DEFAULT_LOG = Path(__file__).with_name("tracker_debug.log")
LOG_FILE = Path(os.getenv("TRACKER_LOG_FILE", str(DEFAULT_LOG))).expanduser().resolve()


def _log(msg: str) -> None:
    """
    Append one line to the debug log.

    NO stdout prints here: the MCP server speaks JSON-RPC over stdio.
    Logging must never break a tracker call, so file errors are ignored.
    """
    try:
        with open(LOG_FILE, "a", encoding="utf-8") as f:
            f.write(msg + "\n")
            f.flush()
    except OSError:
        pass
