"""
Debug logging for tracing how playback ticks drive the practice engine.

Writes one file, session_events.log, with:
- changes of the live sentence under the playback cursor
- pin moves caused by navigation
- auto-stops and refused "next" requests
- playback and recording commands sent to collaborators

Logging is disabled by default. Call enable() to turn it on.
"""

from datetime import datetime
from pathlib import Path

# Log files location (in project root)
LOG_DIR: Path = Path(__file__).parent.parent.parent / "logs"
SESSION_LOG: Path = LOG_DIR / "session_events.log"

# Global flag to control whether debug logging is enabled
_ENABLED: bool = False  # pylint: disable=invalid-name


def enable() -> None:
    """Enable debug logging."""
    global _ENABLED  # pylint: disable=global-statement
    _ENABLED = True


def disable() -> None:
    """Disable debug logging."""
    global _ENABLED  # pylint: disable=global-statement
    _ENABLED = False


def is_enabled() -> bool:
    """Check if debug logging is enabled."""
    return _ENABLED


def _ensure_log_dir() -> None:
    """Create log directory if it doesn't exist."""
    LOG_DIR.mkdir(exist_ok=True)


def _timestamp() -> str:
    """Get current timestamp."""
    return datetime.now().strftime("%H:%M:%S.%f")[:-3]


def _write(line: str) -> None:
    _ensure_log_dir()
    with open(SESSION_LOG, 'a', encoding='utf-8') as f:
        f.write(f"[{_timestamp()}] {line}\n")


def clear_logs() -> None:
    """Clear the log file for a fresh session."""
    if not _ENABLED:
        return
    _ensure_log_dir()
    with open(SESSION_LOG, 'w', encoding='utf-8') as f:
        f.write(
            f"=== New session started at {datetime.now().isoformat()} ===\n\n")


def log_active_change(current_time: float, old_index: int | None, new_index: int | None) -> None:
    """
    Log the live sentence changing under the cursor.

    Args:
        current_time: Playback time of the tick
        old_index: Previous live index (None = no sentence)
        new_index: New live index (None = no sentence)
    """
    if not _ENABLED:
        return
    _write(f"active          t={current_time:9.3f} {old_index} -> {new_index}")


def log_pin_move(old_index: int, new_index: int, mode: str) -> None:
    """Log navigation moving the pinned sentence."""
    if not _ENABLED:
        return
    _write(f"pin             {old_index} -> {new_index} ({mode})")


def log_auto_stop(current_time: float, pinned_index: int) -> None:
    """Log playback being paused at the end of the pinned sentence."""
    if not _ENABLED:
        return
    _write(f"auto_stop       t={current_time:9.3f} pin={pinned_index}")


def log_gate_refusal(pinned_index: int) -> None:
    """Log a "next" request refused by dictation gating."""
    if not _ENABLED:
        return
    _write(f"gate_refused    pin={pinned_index}")


def log_command(command: str, argument: object = None) -> None:
    """Log a command sent to the playback or recording collaborator."""
    if not _ENABLED:
        return
    suffix: str = "" if argument is None else f" {argument}"
    _write(f"command         {command}{suffix}")
