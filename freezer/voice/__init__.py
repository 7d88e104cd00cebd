"""Voice and text removal command package."""

from freezer.voice.commands import (
    UNKNOWN_DRAWER_NAME,
    MatchStatus,
    RemovalResolution,
    RemovalResponse,
    RemovalStatus,
    RemoveCommand,
    ambiguous_dialog,
    drawer_for_number,
    forbidden_dialog,
    not_found_dialog,
    parse_remove_command,
    removed_dialog,
    resolve_removal,
)

__all__ = [
    "UNKNOWN_DRAWER_NAME",
    "MatchStatus",
    "RemovalResolution",
    "RemovalResponse",
    "RemovalStatus",
    "RemoveCommand",
    "ambiguous_dialog",
    "drawer_for_number",
    "forbidden_dialog",
    "not_found_dialog",
    "parse_remove_command",
    "removed_dialog",
    "resolve_removal",
]
