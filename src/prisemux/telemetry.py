"""Telemetry - shared logger factory and metrics facade

Log format: [module] msg, with component tags such as [Rpc], [Conn],
[Redraw:<pty>] inside the message.
Metric examples: rpc.timeouts, rpc.stale_responses, protocol.dropped,
reconnect.attempts, redraw.skew, queue.depth
"""

import logging

_LOG_FORMAT = "[%(name)s] %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger.

    Args:
        name: module name (normally __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def configure_logging(level: str | None = None) -> None:
    """Install a basic handler for the prisemux loggers.

    Intended for the UI shell; library code only ever calls get_logger().
    """
    from .config import LOG_LEVEL

    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=_LOG_FORMAT)


def format_pty_log(module: str, pty_id: int | None, msg: str) -> str:
    """Format a message tagged with a PTY id.

    Returns:
        "[module:pty] msg", or "[module:-] msg" when no PTY is known
    """
    tag = "-" if pty_id is None else str(pty_id)
    return f"[{module}:{tag}] {msg}"


class Metrics:
    """In-memory counters and gauges.

    Kept deliberately small; tests read values back through get_counter()
    and get_gauge().
    """

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._gauges: dict[str, float] = {}

    def inc(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        """Increment a counter.

        Args:
            name: metric name (e.g. "rpc.timeouts")
            labels: optional labels (e.g. {"method": "spawn_pty"})
            value: increment, default 1
        """
        key = self._make_key(name, labels)
        self._counters[key] = self._counters.get(key, 0) + value

    def gauge(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        """Set a gauge value."""
        key = self._make_key(name, labels)
        self._gauges[key] = value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        """Read a counter (for tests)."""
        return self._counters.get(self._make_key(name, labels), 0)

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Read a gauge (for tests)."""
        return self._gauges.get(self._make_key(name, labels), 0.0)

    def reset(self) -> None:
        """Drop all values (for tests)."""
        self._counters.clear()
        self._gauges.clear()

    def _make_key(self, name: str, labels: dict[str, str] | None) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"

    def get_all_counters(self) -> dict[str, int]:
        return dict(self._counters)

    def get_all_gauges(self) -> dict[str, float]:
        return dict(self._gauges)


# Process-wide metrics instance
metrics = Metrics()
