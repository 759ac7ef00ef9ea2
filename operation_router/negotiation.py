"""Content-type matching between requests and declared operation inputs."""

from __future__ import annotations


def primary_type(header: str | None) -> str | None:
    """Return the media type before any ``;`` parameters, lowercased.

    Blank values and values without a ``type/subtype`` shape are treated as
    unparsable and yield ``None``.
    """

    if not header:
        return None
    media_type = header.split(";", 1)[0].strip().lower()
    if "/" not in media_type:
        return None
    main, _, sub = media_type.partition("/")
    if not main or not sub:
        return None
    return media_type


def content_type_matches(header: str | None, declared: str | None) -> bool:
    if declared is None:
        return True
    if header is not None and header == declared:
        return True
    requested = primary_type(header)
    if requested is None:
        return False
    expected = declared.split(";", 1)[0].strip().lower()
    if expected in {"*/*", requested}:
        return True
    if expected.endswith("/*"):
        return requested.split("/", 1)[0] == expected[:-2]
    return False
