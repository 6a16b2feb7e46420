"""Global utilities for the CLI.
"""

from typing import List


def format_number(n: float) -> str:
    """Return a number with suffix k, M, G or nothing.
    The string is at most 7 chars unless the size exceed 1 T.
    """
    if n < 1000:
        return f"{int(n)}"
    elif n < 1000000:
        return f"{(int(n / 100) / 10):.1f} k"
    elif n < 1000000000:
        return f"{(int(n / 100000) / 10):.1f} M"
    else:
        return f"{(int(n / 100000000) / 10):.1f} G"


def format_duration(n: float) -> str:
    """Return a duration with proper suffix s, m, h.
    """
    if n < 60:
        return f"{int(n)} s"
    elif n < 3600:
        return f"{int(n / 60)} m"
    else:
        return f"{int(n / 3600)} h"


def format_command(args: List[str]) -> str:
    """Join command arguments for display, quoting those containing spaces and hiding
    the value following `--accessToken`.
    """
    parts = []
    hide_next = False
    for arg in args:
        if hide_next:
            arg = "*" * min(len(arg), 8)
            hide_next = False
        elif arg == "--accessToken":
            hide_next = True
        parts.append(f"\"{arg}\"" if " " in arg else arg)
    return " ".join(parts)
