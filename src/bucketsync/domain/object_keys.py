"""Object key helpers: prefixes, relative paths and collision-free names."""

from __future__ import annotations

import posixpath
from collections.abc import Iterable

_COPY_SUFFIX = " copy"


def normalize_prefix(prefix: str) -> str:
    """Return `""` for the bucket root, otherwise a prefix ending with `/`."""

    stripped = prefix.strip().lstrip("/")
    if not stripped:
        return ""
    return stripped if stripped.endswith("/") else f"{stripped}/"


def parent_prefix(key: str) -> str:
    """Prefix containing `key` (folder markers included)."""

    trimmed = key.rstrip("/")
    index = trimmed.rfind("/")
    return "" if index < 0 else trimmed[: index + 1]


def join_key(prefix: str, name: str, is_folder: bool = False) -> str:
    """Build `prefix + name`, with a trailing slash for folders."""

    key = f"{normalize_prefix(prefix)}{name.strip('/')}"
    return f"{key}/" if is_folder else key


def relative_key(key: str, prefix: str) -> str:
    """Key relative to `prefix`; keys outside it are returned unchanged."""

    return key[len(prefix) :] if prefix and key.startswith(prefix) else key


def copy_name(name: str, attempt: int, is_folder: bool = False) -> str:
    """Name for the n-th collision: `a copy.txt`, `a copy 2.txt`, ..."""

    if is_folder:
        base, extension = name, ""
    else:
        base, extension = posixpath.splitext(name)
    suffix = _COPY_SUFFIX if attempt <= 1 else f"{_COPY_SUFFIX} {attempt}"
    return f"{base}{suffix}{extension}"


def collision_scan_prefix(target_key: str, is_folder: bool = False) -> str:
    """Narrowest listing prefix covering `target_key` and all of its copy names."""

    prefix = parent_prefix(target_key)
    name = target_key[len(prefix) :].rstrip("/")
    stem = name if is_folder else posixpath.splitext(name)[0]
    return f"{prefix}{stem}"


def _key_taken(candidate: str, existing: set[str], is_folder: bool) -> bool:
    if candidate in existing:
        return True
    if not is_folder:
        return False
    return any(key.startswith(candidate) for key in existing)


def resolve_collision_free_key(
    target_key: str,
    existing_keys: Iterable[str],
    is_folder: bool = False,
) -> str:
    """Return `target_key` or the first free `" copy"`/`" copy N"` variant.

    For folders a candidate is taken when its marker or any key below it
    already exists.
    """

    existing = set(existing_keys)
    if not _key_taken(target_key, existing, is_folder):
        return target_key

    prefix = parent_prefix(target_key)
    name = target_key[len(prefix) :].rstrip("/")
    attempt = 1
    while True:
        candidate = join_key(prefix, copy_name(name, attempt, is_folder), is_folder)
        if not _key_taken(candidate, existing, is_folder):
            return candidate
        attempt += 1


__all__ = [
    "collision_scan_prefix",
    "copy_name",
    "join_key",
    "normalize_prefix",
    "parent_prefix",
    "relative_key",
    "resolve_collision_free_key",
]
