"""Regex substitution with an asynchronous replacement callback."""

from __future__ import annotations

import asyncio
import re
from typing import Any, Awaitable, Callable

AsyncReplacement = Callable[..., Awaitable[str]]


async def replace_async(text: Any, pattern: re.Pattern[str] | str, resolve: AsyncReplacement) -> str:
    """Replace every match of ``pattern`` in ``text`` with ``await resolve(match, *groups)``.

    All callbacks are started before any is awaited. Results are spliced back
    in match order, so completion order does not matter. Non-string input
    yields an empty string.
    """
    if not isinstance(text, str):
        return ""
    if isinstance(pattern, str):
        pattern = re.compile(pattern)

    matches = list(pattern.finditer(text))
    if not matches:
        return text

    replacements = await asyncio.gather(*(resolve(m.group(0), *m.groups()) for m in matches))

    parts: list[str] = []
    pos = 0
    for match, replacement in zip(matches, replacements):
        parts.append(text[pos : match.start()])
        parts.append(replacement)
        pos = match.end()
    parts.append(text[pos:])
    return "".join(parts)
