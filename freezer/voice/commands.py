"""
Voice and Text Removal Commands

Turns a raw utterance ("I removed chicken from drawer 2") into a
structured removal intent and resolves it against the inventory.

Two stages:
1. PARSE   - utterance -> RemoveCommand (item term + optional drawer number)
2. RESOLVE - item term -> zero, one or many candidate items

The resolver never deletes anything. The store decides what happens with
a single candidate (confirm first for voice, delete at once for the
assistant path) and owns the permission gate in front of both stages.
"""

import re
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from freezer.models.inventory import Drawer, InventoryDocument, Item, normalize_name


REMOVE_KEYWORDS = ("remove", "removed", "delete", "deleted", "took", "taken", "used")

COMMAND_PHRASES = (
    "i have removed", "i removed",
    "i have deleted", "i deleted",
    "i have taken", "i took",
) + REMOVE_KEYWORDS

FILLER_WORDS = ("i", "have", "from", "the", "a", "an", "my", "freezer", "please", "item")

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9\s]")
_DRAWER_NUMBER = re.compile(r"drawer\s*([0-9]+)")
# Longest phrases first so "i have removed" is not left as "i have".
_COMMAND_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(p) for p in sorted(COMMAND_PHRASES, key=len, reverse=True)) + r")\b"
)
_FILLER_PATTERN = re.compile(r"\b(?:" + "|".join(FILLER_WORDS) + r")\b")

UNKNOWN_DRAWER_NAME = "Unknown"


class MatchStatus(str, Enum):
    """Outcome of parsing and resolving an utterance."""
    NO_COMMAND = "no_command"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    READY = "ready"
    AMBIGUOUS = "ambiguous"


class RemovalStatus(str, Enum):
    """Outcome reported back to the assistant."""
    REMOVED = "removed"
    NOT_FOUND = "not_found"
    AMBIGUOUS = "ambiguous"
    FORBIDDEN = "forbidden"


class RemoveCommand(BaseModel):
    """A parsed removal intent."""

    item_term: str = Field(..., min_length=1)
    drawer_number: Optional[int] = Field(default=None, ge=0)


class RemovalResolution(BaseModel):
    """
    Candidates for a removal intent.

    Candidates are ordered oldest first. With more than one candidate the
    caller should ask again using one of `drawer_names`.
    """

    status: MatchStatus
    item_term: str = ""
    command: Optional[RemoveCommand] = None
    candidates: list[Item] = Field(default_factory=list)
    drawer_names: list[str] = Field(default_factory=list)

    @property
    def candidate(self) -> Optional[Item]:
        """The item ready for confirmation, if exactly one matched."""
        if self.status is MatchStatus.READY:
            return self.candidates[0]
        return None


class RemovalResponse(BaseModel):
    """Assistant-facing result: a status plus a sentence to speak."""

    status: RemovalStatus
    dialog: str
    item_id: Optional[UUID] = None


# =============================================================================
# DIALOG
# =============================================================================

def forbidden_dialog() -> str:
    return "You do not have permission to remove freezer items."


def not_found_dialog(item_term: str = "") -> str:
    if not item_term:
        return "I could not find that item in your freezer."
    return f"I could not find {item_term} in your freezer."


def ambiguous_dialog(item_term: str, drawer_names: list[str]) -> str:
    return f"I found {item_term} in {', '.join(drawer_names)}. Please repeat with the drawer name."


def removed_dialog(item_name: str, drawer_name: str) -> str:
    return f"{item_name} removed from {drawer_name}."


# =============================================================================
# PARSE
# =============================================================================

def parse_remove_command(utterance: str) -> Optional[RemoveCommand]:
    """
    Parse an utterance into a removal command.

    Returns None when no removal keyword is present or nothing is left
    once keywords, the drawer qualifier and filler words are stripped.
    """
    normalized = _NON_ALPHANUMERIC.sub(" ", utterance.lower())

    if not set(normalized.split()).intersection(REMOVE_KEYWORDS):
        return None

    working = normalized
    drawer_number = None

    match = _DRAWER_NUMBER.search(working)
    if match:
        drawer_number = int(match.group(1))
        working = f"{working[:match.start()]} {working[match.end():]}"

    working = _COMMAND_PATTERN.sub(" ", working)
    working = _FILLER_PATTERN.sub(" ", working)

    item_term = " ".join(working.split())
    if not item_term:
        return None

    return RemoveCommand(item_term=item_term, drawer_number=drawer_number)


# =============================================================================
# RESOLVE
# =============================================================================

def drawer_for_number(document: InventoryDocument, number: int) -> Optional[Drawer]:
    """
    Map a spoken drawer number to a drawer.

    A drawer literally named "Drawer <n>" wins; otherwise the n-th drawer
    in display order (counting from 1).
    """
    drawers = document.sorted_drawers()
    spoken = f"drawer {number}"
    for drawer in drawers:
        if normalize_name(drawer.name) == spoken:
            return drawer
    if 1 <= number <= len(drawers):
        return drawers[number - 1]
    return None


def _matches(item: Item, term: str) -> bool:
    name = item.normalized_name
    if not name:
        return False
    return name == term or term in name or name in term


def resolve_removal(
    document: InventoryDocument,
    item_term: str,
    drawer_name: Optional[str] = None,
    drawer_number: Optional[int] = None,
) -> RemovalResolution:
    """Find the items an item term (and optional drawer qualifier) refers to."""
    term = normalize_name(item_term)
    if not term:
        return RemovalResolution(status=MatchStatus.NOT_FOUND)

    matches = [item for item in document.items if _matches(item, term)]

    if drawer_name and normalize_name(drawer_name):
        wanted = normalize_name(drawer_name)
        drawer_ids = {d.id for d in document.drawers if normalize_name(d.name) == wanted}
        matches = [item for item in matches if item.drawer_id in drawer_ids]
    elif drawer_number is not None:
        drawer = drawer_for_number(document, drawer_number)
        matches = [item for item in matches if drawer and item.drawer_id == drawer.id]

    matches.sort(key=lambda item: item.date_added)

    if not matches:
        return RemovalResolution(status=MatchStatus.NOT_FOUND, item_term=item_term.strip())

    names = set()
    for item in matches:
        drawer = document.drawer(item.drawer_id)
        names.add(drawer.name if drawer else UNKNOWN_DRAWER_NAME)

    status = MatchStatus.READY if len(matches) == 1 else MatchStatus.AMBIGUOUS
    return RemovalResolution(
        status=status,
        item_term=item_term.strip(),
        candidates=matches,
        drawer_names=sorted(names),
    )
