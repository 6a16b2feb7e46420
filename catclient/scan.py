"""Structural scanner for the JSON documents served by the game's metadata services.

Only a handful of fields are read from each document (the version manifest alone lists
hundreds of versions), so instead of building a full parse tree the functions of this
module walk the raw text once, counting brace and bracket depth, and return verbatim
substrings. String contents are skipped as a whole, so braces inside strings are never
counted.

Malformed or truncated input never raises an error: the affected lookups return `None`
and iterations stop where the text is damaged. Callers must treat a missing field as a
normal outcome.
"""

import re

from typing import Optional, Iterator, Tuple, Sequence


__all__ = ["is_object", "iter_members", "iter_array_objects", "lookup_object",
    "lookup_scalar", "lookup_nested_scalar", "parse_scalar"]


_WHITESPACE = " \t\r\n"
_UNESCAPE_RE = re.compile(r'\\(["\\])')


def is_object(text: str) -> bool:
    """Return true if the text holds a single, complete and balanced object.
    """
    start = _skip_ws(text, 0)
    if start >= len(text) or text[start] != "{":
        return False
    end = _skip_value(text, start)
    return end >= 0 and _skip_ws(text, end) == len(text)


def iter_members(text: str) -> Iterator[Tuple[str, str]]:
    """Iterate over the members of the top-level object of the given text, yielding the
    key and the verbatim text of the value. Iteration stops at the first damaged member.
    """
    for key, start, end in _iter_members(text):
        if end < 0:
            return
        yield key, text[start:end]


def iter_array_objects(text: str, key: str) -> Iterator[str]:
    """Locate the array under the given key of the top-level object and yield, one at a
    time, the verbatim text of every object directly inside it. Elements that are not
    objects are skipped. Only the bracket closing the array ends the scan, objects that
    are complete before a truncation are still yielded.
    """

    for member_key, start, _end in _iter_members(text):
        if member_key == key:
            break
    else:
        return

    if text[start] != "[":
        return

    n = len(text)
    i = start + 1
    while True:
        i = _skip_ws(text, i)
        if i >= n or text[i] == "]":
            return
        end = _skip_value(text, i)
        if end < 0:
            return
        if text[i] == "{":
            yield text[i:end]
        i = _skip_ws(text, end)
        if i < n and text[i] == ",":
            i += 1


def lookup_object(text: str, key: str) -> Optional[str]:
    """Return the verbatim text of the object under the given key of the top-level
    object, or `None` if the key is absent or its value isn't an object.
    """
    raw = _lookup_raw(text, key)
    if raw is None or not raw.startswith("{"):
        return None
    return raw


def lookup_scalar(text: str, key: str) -> Optional[str]:
    """Return the scalar value under the given key of the top-level object.

    Strings are returned without their quotes, with `\\"` and `\\\\` unescaped. Numbers,
    `true`, `false` and `null` are returned as their literal text. If the key is absent
    or if the value is an object or an array, `None` is returned.
    """
    raw = _lookup_raw(text, key)
    if raw is None:
        return None
    return parse_scalar(raw)


def lookup_nested_scalar(text: str, keys: Sequence[str]) -> Optional[str]:
    """Descend through successive nested objects following the given keys and return the
    scalar value under the last one. `None` is returned if any hop is absent or isn't an
    object.
    """

    if not len(keys):
        return None

    current: Optional[str] = text
    for key in keys[:-1]:
        current = lookup_object(current, key)
        if current is None:
            return None

    return lookup_scalar(current, keys[-1])


def parse_scalar(raw: str) -> Optional[str]:
    """Interpret the verbatim text of a value as a scalar, `None` for objects and arrays.
    """
    if raw.startswith("\""):
        return _UNESCAPE_RE.sub(r"\1", raw[1:-1])
    elif raw.startswith(("{", "[")):
        return None
    else:
        return raw


def _lookup_raw(text: str, key: str) -> Optional[str]:
    for member_key, start, end in _iter_members(text):
        if member_key == key:
            return None if end < 0 else text[start:end]
    return None


def _iter_members(text: str) -> Iterator[Tuple[str, int, int]]:
    """Internal iterator over the top-level members, yielding the key, the start and end
    indices of the value. The end is -1 for a damaged value, which is always the last
    member yielded.
    """

    n = len(text)
    i = _skip_ws(text, 0)
    if i >= n or text[i] != "{":
        return

    i += 1
    while True:

        i = _skip_ws(text, i)
        if i >= n or text[i] != "\"":
            return  # Either the closing brace or damaged text.

        key_end = _skip_string(text, i)
        if key_end < 0:
            return
        key = _UNESCAPE_RE.sub(r"\1", text[i + 1:key_end - 1])

        i = _skip_ws(text, key_end)
        if i >= n or text[i] != ":":
            return

        start = _skip_ws(text, i + 1)
        if start >= n:
            return

        end = _skip_value(text, start)
        yield key, start, end
        if end < 0:
            return

        i = _skip_ws(text, end)
        if i < n and text[i] == ",":
            i += 1


def _skip_ws(text: str, i: int) -> int:
    n = len(text)
    while i < n and text[i] in _WHITESPACE:
        i += 1
    return i


def _skip_string(text: str, i: int) -> int:
    """Given the index of an opening quote, return the index just after the closing one,
    or -1 if the string is never terminated.
    """
    n = len(text)
    i += 1
    while i < n:
        ch = text[i]
        if ch == "\\":
            i += 2
        elif ch == "\"":
            return i + 1
        else:
            i += 1
    return -1


def _skip_value(text: str, i: int) -> int:
    """Return the index just after the value starting at the given index, or -1 if the
    value is malformed or truncated.
    """

    n = len(text)
    if i >= n:
        return -1

    ch = text[i]
    if ch == "\"":
        return _skip_string(text, i)

    if ch in "{[":
        depth = 0
        while i < n:
            ch = text[i]
            if ch == "\"":
                i = _skip_string(text, i)
                if i < 0:
                    return -1
                continue
            if ch in "{[":
                depth += 1
            elif ch in "}]":
                depth -= 1
                if depth == 0:
                    return i + 1
            i += 1
        return -1

    # Literal values: numbers, true, false and null.
    start = i
    while i < n and text[i] not in ",}]" and text[i] not in _WHITESPACE:
        i += 1
    return i if i > start else -1
