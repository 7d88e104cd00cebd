"""
Assistant Entry Points

What a voice assistant needs when the app is not in the foreground:
1. Entity lists (items and drawers) to offer as parameter values
2. A single "remove item from drawer" action that answers with a sentence

Entity lists come from the on-disk snapshot so they can be read without
opening a store.
"""

from typing import Optional

from pydantic import BaseModel

from freezer.models.inventory import InventoryDocument, normalize_name
from freezer.services.storage import InventoryRepository
from freezer.store import InventoryStore


ASK_FOR_ITEM = "Please tell me which item to remove."
ASK_FOR_DRAWER = "Please tell me the drawer name."


class IntentEntity(BaseModel):
    """A value the assistant can offer for an intent parameter."""

    id: str
    name: str


class IntentSnapshotReader:
    """Stateless read port over the repository's snapshot."""

    def __init__(self, repository: InventoryRepository):
        self._repository = repository

    def snapshot(self) -> InventoryDocument:
        return self._repository.load_snapshot() or InventoryDocument.initial()

    def item_entities(self) -> list[IntentEntity]:
        """One entity per distinct item name, identified by its normalized name."""
        seen: set[str] = set()
        entities = []
        for item in sorted(self.snapshot().items, key=lambda i: i.name):
            name = item.name.strip()
            normalized = normalize_name(name)
            if not normalized or normalized in seen:
                continue
            seen.add(normalized)
            entities.append(IntentEntity(id=normalized, name=name))
        return entities

    def drawer_entities(self) -> list[IntentEntity]:
        return [
            IntentEntity(id=str(drawer.id), name=drawer.name)
            for drawer in self.snapshot().sorted_drawers()
        ]

    def entities_for(self, identifiers: list[str], drawers: bool = False) -> list[IntentEntity]:
        """Look entities up by id, keeping list order."""
        wanted = set(identifiers)
        candidates = self.drawer_entities() if drawers else self.item_entities()
        return [e for e in candidates if e.id in wanted]


async def perform_remove_intent(
    store: InventoryStore,
    item_name: Optional[str],
    drawer_name: Optional[str],
) -> str:
    """Run the "remove item from drawer" action and return the spoken reply."""
    item = (item_name or "").strip()
    drawer = (drawer_name or "").strip()

    if not item:
        return ASK_FOR_ITEM
    if not drawer:
        return ASK_FOR_DRAWER

    response = await store.remove_item_for_assistant(item, drawer)
    return response.dialog
