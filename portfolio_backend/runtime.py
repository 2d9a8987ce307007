from __future__ import annotations

import platform
import resource
import time

_STARTED = time.monotonic()


def uptime_seconds() -> float:
    return round(time.monotonic() - _STARTED, 3)


def max_rss_kb() -> int:
    # ru_maxrss is kilobytes on Linux, bytes on macOS.
    rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    if platform.system() == "Darwin":
        rss //= 1024
    return int(rss)


def python_version() -> str:
    return platform.python_version()


def platform_name() -> str:
    return platform.platform(terse=True)
