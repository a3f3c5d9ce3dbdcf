# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/certcsi/utils/duration.py
from __future__ import annotations

import re
from datetime import timedelta

# Go duration syntax, e.g. "300ms", "1.5h", "2h45m"
_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_TOKEN = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

# largest value of a Go time.Duration (int64 nanoseconds)
MAX_DURATION_SECONDS = (2**63 - 1) / 1e9


def parse_duration(value: str) -> timedelta:
    s = value
    if not s:
        raise ValueError('invalid duration ""')

    sign = 1
    if s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:]

    if s == "0":
        return timedelta(0)
    if not s:
        raise ValueError(f"invalid duration {value!r}")

    total = 0.0
    pos = 0
    while pos < len(s):
        m = _TOKEN.match(s, pos)
        if m is None:
            raise ValueError(f"invalid duration {value!r}")
        total += float(m.group(1)) * _UNITS[m.group(2)]
        pos = m.end()

    if total > MAX_DURATION_SECONDS:
        raise ValueError(f"invalid duration {value!r}: out of range")
    return timedelta(seconds=sign * total)


def format_duration(td: timedelta) -> str:
    """Render *td* the way Go prints a time.Duration ("2160h0m0s")."""
    total = td.total_seconds()
    if total == 0:
        return "0s"

    sign = "-" if total < 0 else ""
    total = abs(total)

    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    sec = f"{seconds:.9f}".rstrip("0").rstrip(".")

    if hours:
        return f"{sign}{int(hours)}h{int(minutes)}m{sec}s"
    if minutes:
        return f"{sign}{int(minutes)}m{sec}s"
    return f"{sign}{sec}s"
