"""
Tests for the inventory store.

Refused mutations are asserted three ways: the call returns False, the
document is unchanged and nothing was saved.
"""

from datetime import timedelta
from uuid import uuid4

import pytest

from freezer.models.audit import AuditEventType
from freezer.models.inventory import (
    Category,
    Drawer,
    DrawerDraft,
    ExpiryState,
    FoodMapping,
    HouseholdRole,
)
from freezer.services.notifications import OVERDUE_REMINDER_ID
from freezer.services.storage import StorageError
from freezer.store import ensure_owner
from freezer.voice import MatchStatus, RemovalStatus

from conftest import (
    NOW,
    CountingRepository,
    category_id,
    drawer_named,
    make_item,
    with_current_role,
)


def _rejections(audit) -> list:
    return [e for e in audit.recent_events if e.event_type is AuditEventType.MUTATION_REJECTED]


class TestOpen:
    """Tests for loading, creating and repairing the document."""

    @pytest.mark.asyncio
    async def test_first_launch_creates_and_saves(self, open_store, repository, audit):
        store = await open_store()

        assert repository.save_count == 1
        assert repository.load_snapshot() is not None
        assert store.household_name == "Home Freezer"
        assert store.current_role is HouseholdRole.OWNER
        assert not store.onboarding_complete
        assert [c.name for c in store.categories] == ["Dairy", "Fish", "Fruit & Veg", "Meat", "Ready Meal"]
        assert any(e.event_type is AuditEventType.DOCUMENT_CREATED for e in audit.recent_events)

    @pytest.mark.asyncio
    async def test_corrupt_file_starts_fresh(self, open_store, data_file, repository):
        data_file.write_bytes(b"\xff\xfe{not json")

        store = await open_store()

        assert store.household_name == "Home Freezer"
        assert repository.load_snapshot() is not None

    @pytest.mark.asyncio
    async def test_first_launch_uses_given_names(self, open_store):
        store = await open_store(household_name="Cabin", user_name="Sam", threshold_months=3)

        assert store.household_name == "Cabin"
        assert store.current_user.display_name == "Sam"
        assert store.threshold_months == 3

    @pytest.mark.asyncio
    async def test_clean_document_is_not_saved(self, open_store, stocked_document, repository):
        await open_store(stocked_document)
        assert repository.save_count == 0

    @pytest.mark.asyncio
    async def test_missing_membership_is_restored(self, open_store, stocked_document, repository):
        stocked_document.household = stocked_document.household.model_copy(update={"members": []})

        store = await open_store(stocked_document)

        assert store.current_role is HouseholdRole.OWNER
        assert repository.save_count == 1
        assert repository.load_snapshot().household.members[0].user_id == store.current_user.id

    @pytest.mark.asyncio
    async def test_household_without_owner_promotes_first_member(self, open_store, stocked_document):
        members = [m.model_copy(update={"role": HouseholdRole.EDITOR}) for m in stocked_document.household.members]
        stocked_document.household = stocked_document.household.model_copy(update={"members": members})

        store = await open_store(stocked_document)

        assert store.members[0].role is HouseholdRole.OWNER

    @pytest.mark.asyncio
    async def test_unknown_authors_are_repointed(self, open_store, stocked_document):
        stranger = uuid4()
        stocked_document.items = [
            i.model_copy(update={"created_by_user_id": stranger, "updated_by_user_id": stranger})
            for i in stocked_document.items
        ]

        store = await open_store(stocked_document)

        assert {i.created_by_user_id for i in store.items} == {store.current_user.id}
        assert {i.updated_by_user_id for i in store.items} == {store.current_user.id}

    @pytest.mark.asyncio
    async def test_empty_categories_are_reseeded(self, open_store, stocked_document):
        stocked_document.categories = []
        store = await open_store(stocked_document)
        assert len(store.categories) == 5

    @pytest.mark.asyncio
    async def test_unreadable_store_raises(self, open_store, data_file):
        data_file.mkdir()
        with pytest.raises(StorageError):
            await open_store()


class TestProjections:
    """Tests for read-only views."""

    @pytest.mark.asyncio
    async def test_orderings(self, open_store, stocked_document):
        store = await open_store(with_current_role(stocked_document, HouseholdRole.EDITOR))

        assert [d.name for d in store.drawers] == ["Top", "Middle"]
        assert [i.name for i in store.items] == ["Salmon", "Chicken", "Chicken"]
        assert [m.role for m in store.members] == [HouseholdRole.OWNER, HouseholdRole.EDITOR]
        assert [u.display_name for u in store.users] == ["Alex", "You"]

    @pytest.mark.asyncio
    async def test_unknown_references_have_placeholder_names(self, open_store, stocked_document):
        store = await open_store(stocked_document)

        assert store.user_name(uuid4()) == "Unknown"
        assert store.category_name(uuid4()) == "Unknown"
        assert store.drawer_name(uuid4()) == "Unknown"

    @pytest.mark.asyncio
    async def test_matching_items_searches_all_labels(self, open_store, stocked_document):
        store = await open_store(stocked_document)

        assert [i.name for i in store.matching_items("salm")] == ["Salmon"]
        assert len(store.matching_items("middle")) == 2
        assert len(store.matching_items("meat")) == 2
        assert len(store.matching_items("  ")) == 3

    @pytest.mark.asyncio
    async def test_items_in_drawer(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        top = drawer_named(stocked_document, "Top")
        assert [i.name for i in store.items_in_drawer(top.id)] == ["Chicken"]

    @pytest.mark.asyncio
    async def test_expiry(self, open_store, stocked_document):
        old = make_item(stocked_document, "Peas", drawer_named(stocked_document, "Top"), NOW - timedelta(days=200))
        soon = make_item(stocked_document, "Beans", drawer_named(stocked_document, "Top"), NOW - timedelta(days=160))
        stocked_document.items = stocked_document.items + [old, soon]

        store = await open_store(stocked_document)

        assert [i.name for i in store.overdue_items()] == ["Peas"]
        assert store.expiry_state(old) is ExpiryState.EXPIRED
        assert store.expiry_state(soon) is ExpiryState.EXPIRING_SOON
        assert store.expiry_state(store.items[0]) is ExpiryState.NORMAL


class TestPermissions:
    """Tests for role checks."""

    @pytest.mark.asyncio
    async def test_viewer_cannot_change_anything(self, open_store, stocked_document, repository, audit):
        store = await open_store(with_current_role(stocked_document, HouseholdRole.VIEWER))
        before = store.document.model_dump()
        some_item = store.items[0]

        assert await store.add_item("Peas", "1 bag", NOW) is False
        assert await store.update_item(some_item.model_copy(update={"name": "Cod"})) is False
        assert await store.delete_item(some_item.id) is False
        assert await store.add_category("Desserts") is False
        assert await store.update_drawers(store.drawers[:1]) is False
        assert await store.set_threshold_months(2) is False
        assert await store.add_user_mapping("peas", store.categories[0].id) is False

        assert store.document.model_dump() == before
        assert repository.save_count == 0
        rejection = _rejections(audit)[0]
        assert rejection.details["reason"] == "forbidden"
        assert rejection.details["role"] == "viewer"

    @pytest.mark.asyncio
    async def test_editor_edits_content_but_not_members(self, open_store, stocked_document, repository):
        store = await open_store(with_current_role(stocked_document, HouseholdRole.EDITOR))

        assert store.can_edit_content and not store.can_manage_members
        assert await store.add_member("Robin", HouseholdRole.VIEWER) is False
        assert await store.rename_household("Garage") is False
        assert repository.save_count == 0

        assert await store.add_category("Desserts") is True
        assert repository.save_count == 1

    @pytest.mark.asyncio
    async def test_any_user_may_rename_themselves(self, open_store, stocked_document):
        store = await open_store(with_current_role(stocked_document, HouseholdRole.VIEWER))
        assert await store.rename_current_user("  Jo ") is True
        assert store.current_user.display_name == "Jo"


class TestHousehold:
    """Tests for members and identity."""

    @pytest.mark.asyncio
    async def test_add_member(self, open_store, stocked_document):
        store = await open_store(stocked_document)

        assert await store.add_member(" Robin ", HouseholdRole.EDITOR) is True

        robin = next(u for u in store.users if u.display_name == "Robin")
        assert store.document.role_for(robin.id) is HouseholdRole.EDITOR

    @pytest.mark.asyncio
    async def test_duplicate_or_blank_member_refused(self, open_store, stocked_document, audit):
        store = await open_store(stocked_document)

        assert await store.add_member("you", HouseholdRole.EDITOR) is False
        assert await store.add_member("   ", HouseholdRole.EDITOR) is False
        assert len(store.users) == 1
        assert [e.details["reason"] for e in _rejections(audit)] == ["invalid_input", "invariant"]

    @pytest.mark.asyncio
    async def test_owner_cannot_demote_or_remove_self(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        me = store.document.member_for_user(store.current_user.id)

        assert await store.update_member_role(me.id, HouseholdRole.EDITOR) is False
        assert await store.remove_member(me.id) is False
        assert store.current_role is HouseholdRole.OWNER

    @pytest.mark.asyncio
    async def test_change_role_and_remove_other_member(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        await store.add_member("Robin", HouseholdRole.VIEWER)
        robin_user = next(u for u in store.users if u.display_name == "Robin")
        robin = store.document.member_for_user(robin_user.id)

        assert await store.update_member_role(robin.id, HouseholdRole.EDITOR) is True
        assert store.document.role_for(robin_user.id) is HouseholdRole.EDITOR

        assert await store.remove_member(robin.id) is True
        assert store.document.member_for_user(robin_user.id) is None
        assert robin_user.id not in [u.id for u in store.users]

    @pytest.mark.asyncio
    async def test_unknown_member(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        assert await store.remove_member(uuid4()) is False
        assert await store.update_member_role(uuid4(), HouseholdRole.VIEWER) is False

    @pytest.mark.asyncio
    async def test_switch_current_user(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        await store.add_member("Robin", HouseholdRole.VIEWER)
        robin = next(u for u in store.users if u.display_name == "Robin")

        assert await store.switch_current_user(robin.id) is True
        assert store.current_role is HouseholdRole.VIEWER
        assert await store.switch_current_user(uuid4()) is False

    @pytest.mark.asyncio
    async def test_rename_household(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        assert await store.rename_household("  Garage ") is True
        assert store.household_name == "Garage"
        assert await store.rename_household(" ") is False

    def test_ensure_owner(self, stocked_document):
        member = stocked_document.household.members[0]
        editor = member.model_copy(update={"role": HouseholdRole.EDITOR})

        promoted, changed = ensure_owner([editor])
        assert changed and promoted[0].role is HouseholdRole.OWNER

        unchanged, changed = ensure_owner([member])
        assert not changed and unchanged == [member]
        assert ensure_owner([]) == ([], False)


class TestOnboardingAndSettings:
    """Tests for onboarding, threshold and reminder hour."""

    @pytest.mark.asyncio
    async def test_complete_onboarding(self, open_store):
        store = await open_store()
        meat = next(c for c in store.categories if c.name == "Meat")

        drafts = [DrawerDraft(name=" Top ", category_id=meat.id), DrawerDraft(name="", category_id=uuid4())]
        assert await store.complete_onboarding(drafts, 0) is True

        assert store.onboarding_complete
        assert [(d.name, d.order) for d in store.drawers] == [("Top", 0), ("Drawer 2", 1)]
        assert store.drawers[1].default_category_id in {c.id for c in store.categories}
        assert store.threshold_months == 1

    @pytest.mark.asyncio
    async def test_onboarding_without_drawers_refused_when_items_exist(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        assert await store.complete_onboarding([], 6) is False
        assert len(store.drawers) == 2

    @pytest.mark.asyncio
    async def test_settings_are_clamped(self, open_store, stocked_document):
        store = await open_store(stocked_document)

        assert await store.set_threshold_months(-4) is True
        assert store.threshold_months == 1
        assert await store.set_notification_hour(30) is True
        assert store.notification_hour == 23


class TestItems:
    """Tests for item mutations."""

    @pytest.mark.asyncio
    async def test_add_item_uses_suggestions(self, open_store, stocked_document):
        store = await open_store(stocked_document)

        assert await store.add_item("  Chicken Thighs ", " 2 packs ", NOW) is True

        item = store.items[0]
        assert item.name == "Chicken Thighs"
        assert item.normalized_name == "chicken thighs"
        assert item.quantity == "2 packs"
        assert store.category_name(item.category_id) == "Meat"
        assert store.drawer_name(item.drawer_id) == "Top"
        assert item.created_by_user_id == store.current_user.id
        assert item.updated_at == NOW

    @pytest.mark.asyncio
    async def test_add_item_with_explicit_placement(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        middle = drawer_named(stocked_document, "Middle")
        dairy = category_id(stocked_document, "Dairy")

        assert await store.add_item("Chicken", "", NOW, category_id=dairy, drawer_id=middle.id) is True
        assert store.items[0].drawer_id == middle.id
        assert store.items[0].category_id == dairy

    @pytest.mark.asyncio
    async def test_blank_name_refused(self, open_store, stocked_document, repository):
        store = await open_store(stocked_document)
        assert await store.add_item("   ", "1", NOW) is False
        assert repository.save_count == 0

    @pytest.mark.asyncio
    async def test_no_drawer_refused(self, open_store, audit):
        store = await open_store()
        assert await store.add_item("Peas", "1 bag", NOW) is False
        assert store.items == []
        assert _rejections(audit)[0].details["rule"] == "no_drawer"

    @pytest.mark.asyncio
    async def test_update_item_stamps_editor(self, open_store, stocked_document, clock):
        store = await open_store(stocked_document)
        salmon = next(i for i in store.items if i.name == "Salmon")
        original_author = salmon.created_by_user_id
        clock.advance(hours=1)

        edited = salmon.model_copy(update={"name": " Smoked Salmon ", "created_by_user_id": uuid4()})
        assert await store.update_item(edited) is True

        updated = store.document.item(salmon.id)
        assert updated.name == "Smoked Salmon"
        assert updated.normalized_name == "smoked salmon"
        assert updated.created_by_user_id == original_author
        assert updated.updated_at == NOW + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_update_item_with_gone_drawer_is_repointed(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        salmon = next(i for i in store.items if i.name == "Salmon")

        assert await store.update_item(salmon.model_copy(update={"drawer_id": uuid4()})) is True
        assert store.drawer_name(store.document.item(salmon.id).drawer_id) == "Middle"

    @pytest.mark.asyncio
    async def test_update_unknown_item_refused(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        ghost = store.items[0].model_copy(update={"id": uuid4()})
        assert await store.update_item(ghost) is False

    @pytest.mark.asyncio
    async def test_delete_item(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        salmon = next(i for i in store.items if i.name == "Salmon")

        assert await store.delete_item(salmon.id) is True
        assert store.document.item(salmon.id) is None
        assert await store.delete_item(salmon.id) is False

    @pytest.mark.asyncio
    async def test_save_failure_keeps_change_in_memory(self, open_store, stocked_document, tmp_path, audit):
        class FailingRepository(CountingRepository):
            fail = False

            async def save(self, document):
                if self.fail:
                    raise StorageError("disk full")
                await super().save(document)

        repo = FailingRepository(tmp_path / "failing.json")
        store = await open_store(stocked_document, repo=repo)
        repo.fail = True

        assert await store.add_category("Desserts") is True
        assert "Desserts" in [c.name for c in store.categories]
        assert any(e.event_type is AuditEventType.SAVE_FAILED for e in audit.recent_events)


class TestDrawers:
    """Tests for drawer layout changes."""

    @pytest.mark.asyncio
    async def test_update_drawers_renumbers_and_repoints(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        top, middle = store.drawers
        bottom = Drawer(name=" Bottom ", order=9, default_category_id=uuid4())

        assert await store.update_drawers([bottom, top]) is True

        assert [(d.name, d.order) for d in store.drawers] == [("Bottom", 0), ("Top", 1)]
        assert store.drawers[0].default_category_id in {c.id for c in store.categories}
        assert not store.items_in_drawer(middle.id)
        assert len(store.items_in_drawer(bottom.id)) == 2

    @pytest.mark.asyncio
    async def test_empty_drawer_list_refused_with_items(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        assert await store.update_drawers([]) is False
        assert len(store.drawers) == 2

    @pytest.mark.asyncio
    async def test_blank_drawer_name_refuses_whole_update(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        top, middle = store.drawers

        assert await store.update_drawers([top, middle.model_copy(update={"name": "  "})]) is False
        assert [d.name for d in store.drawers] == ["Top", "Middle"]

    @pytest.mark.asyncio
    async def test_delete_drawer(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        top, middle = store.drawers

        assert await store.delete_drawer(top.id) is True

        assert [(d.name, d.order) for d in store.drawers] == [("Middle", 0)]
        assert len(store.items_in_drawer(middle.id)) == 3
        assert await store.delete_drawer(middle.id) is False
        assert await store.delete_drawer(uuid4()) is False


class TestMappings:
    """Tests for keyword mappings."""

    @pytest.mark.asyncio
    async def test_add_then_overwrite(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        fish = category_id(stocked_document, "Fish")
        dairy = category_id(stocked_document, "Dairy")

        assert await store.add_user_mapping("Nuggets", fish) is True
        assert await store.add_user_mapping(" nuggets ", dairy) is True

        assert len(store.mappings) == 1
        assert store.mappings[0].keyword == "nuggets"
        assert store.mappings[0].category_id == dairy
        assert store.suggested_category("Chicken Nuggets").name == "Dairy"

    @pytest.mark.asyncio
    async def test_unknown_category_or_blank_keyword_refused(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        assert await store.add_user_mapping("peas", uuid4()) is False
        assert await store.add_user_mapping("  ", store.categories[0].id) is False
        assert store.mappings == []

    @pytest.mark.asyncio
    async def test_update_and_delete(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        fish = category_id(stocked_document, "Fish")
        await store.add_user_mapping("prawn", fish)
        await store.add_user_mapping("cod", fish)
        prawn = next(m for m in store.mappings if m.keyword == "prawn")

        assert await store.update_user_mapping(prawn.model_copy(update={"keyword": "COD"})) is False
        assert await store.update_user_mapping(prawn.model_copy(update={"keyword": " shrimp "})) is True
        assert [m.keyword for m in store.mappings] == ["cod", "shrimp"]

        assert await store.update_user_mapping(FoodMapping(keyword="x", category_id=fish)) is False
        assert await store.delete_mapping(prawn.id) is True
        assert await store.delete_mapping(prawn.id) is False


class TestCategories:
    """Tests for category changes."""

    @pytest.mark.asyncio
    async def test_add_category_refuses_duplicates(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        assert await store.add_category(" meat ") is False
        assert await store.add_category("Desserts") is True
        assert len(store.categories) == 6

    @pytest.mark.asyncio
    async def test_delete_category_repoints_references(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        meat = category_id(stocked_document, "Meat")
        await store.add_user_mapping("steak", meat)

        assert await store.delete_category(meat) is True

        first = category_id(stocked_document, "Fish")
        assert all(i.category_id != meat for i in store.items)
        assert store.drawers[0].default_category_id == first
        assert store.mappings[0].category_id == first

    @pytest.mark.asyncio
    async def test_last_category_cannot_be_deleted(self, open_store, stocked_document, audit):
        store = await open_store(stocked_document)
        only = store.categories[0]
        assert await store.update_categories([only]) is True

        assert await store.delete_category(only.id) is False
        assert _rejections(audit)[0].details["rule"] == "last_category"

    @pytest.mark.asyncio
    async def test_update_categories_cleans_names(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        fish = stocked_document.category(category_id(stocked_document, "Fish"))

        replacement = [
            fish.model_copy(update={"name": " Seafood "}),
            Category(name="seafood"),
            Category(name="   "),
            Category(name="Desserts"),
        ]
        assert await store.update_categories(replacement) is True

        assert [c.name for c in store.categories] == ["Desserts", "Seafood"]
        assert {i.category_id for i in store.items} == {fish.id}
        assert {d.default_category_id for d in store.drawers} == {fish.id}

    @pytest.mark.asyncio
    async def test_update_categories_refuses_empty_set(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        assert await store.update_categories([Category(name=" ")]) is False
        assert len(store.categories) == 5


class TestAssistantRemoval:
    """Tests for removal requested by a voice assistant."""

    @pytest.mark.asyncio
    async def test_single_match_is_removed(self, open_store, stocked_document):
        store = await open_store(stocked_document)

        response = await store.remove_item_for_assistant("salmon")

        assert response.status is RemovalStatus.REMOVED
        assert response.dialog == "Salmon removed from Middle."
        assert store.document.item(response.item_id) is None

    @pytest.mark.asyncio
    async def test_ambiguous_match_removes_nothing(self, open_store, stocked_document, repository):
        store = await open_store(stocked_document)

        response = await store.remove_item_for_assistant("chicken")

        assert response.status is RemovalStatus.AMBIGUOUS
        assert response.dialog == "I found chicken in Middle, Top. Please repeat with the drawer name."
        assert len(store.items) == 3
        assert repository.save_count == 0

    @pytest.mark.asyncio
    async def test_drawer_name_picks_the_item(self, open_store, stocked_document):
        store = await open_store(stocked_document)

        response = await store.remove_item_for_assistant("chicken", "top")

        assert response.dialog == "Chicken removed from Top."
        assert [store.drawer_name(i.drawer_id) for i in store.items if i.name == "Chicken"] == ["Middle"]

    @pytest.mark.asyncio
    async def test_not_found(self, open_store, stocked_document):
        store = await open_store(stocked_document)

        response = await store.remove_item_for_assistant("pizza")
        assert response.status is RemovalStatus.NOT_FOUND
        assert response.dialog == "I could not find pizza in your freezer."

        blank = await store.remove_item_for_assistant("  ")
        assert blank.dialog == "I could not find that item in your freezer."

    @pytest.mark.asyncio
    async def test_viewer_is_refused(self, open_store, stocked_document):
        store = await open_store(with_current_role(stocked_document, HouseholdRole.VIEWER))

        response = await store.remove_item_for_assistant("salmon")

        assert response.status is RemovalStatus.FORBIDDEN
        assert response.dialog == "You do not have permission to remove freezer items."
        assert len(store.items) == 3


class TestVoiceRemoval:
    """Tests for the resolve-then-confirm voice flow."""

    @pytest.mark.asyncio
    async def test_resolve_then_confirm(self, open_store, stocked_document):
        store = await open_store(stocked_document)

        resolution = store.resolve_voice_command("I removed chicken from drawer 2")

        assert resolution.status is MatchStatus.READY
        assert resolution.command.item_term == "chicken"
        assert store.drawer_name(resolution.candidate.drawer_id) == "Middle"
        assert len(store.items) == 3

        response = await store.confirm_removal(resolution.candidate.id)
        assert response.dialog == "Chicken removed from Middle."
        assert len(store.items) == 2

    @pytest.mark.asyncio
    async def test_not_a_command(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        assert store.resolve_voice_command("hello there").status is MatchStatus.NO_COMMAND

    @pytest.mark.asyncio
    async def test_ambiguous_without_drawer(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        resolution = store.resolve_voice_command("remove chicken")
        assert resolution.status is MatchStatus.AMBIGUOUS
        assert resolution.drawer_names == ["Middle", "Top"]

    @pytest.mark.asyncio
    async def test_confirm_vanished_item(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        response = await store.confirm_removal(uuid4())
        assert response.status is RemovalStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_viewer_cannot_resolve(self, open_store, stocked_document):
        store = await open_store(with_current_role(stocked_document, HouseholdRole.VIEWER))
        assert store.resolve_voice_command("remove salmon").status is MatchStatus.FORBIDDEN


class TestReminders:
    """Tests for the overdue reminder."""

    @pytest.mark.asyncio
    async def test_nothing_overdue_cancels(self, open_store, stocked_document, reminders):
        await open_store(stocked_document)
        assert reminders.cancelled == [OVERDUE_REMINDER_ID]
        assert reminders.scheduled == []

    @pytest.mark.asyncio
    async def test_schedule_replace_and_cancel(self, open_store, stocked_document, reminders):
        store = await open_store(stocked_document)

        await store.add_item("Old Peas", "", NOW - timedelta(days=200))
        assert reminders.active[OVERDUE_REMINDER_ID].body == (
            "1 item has been in the freezer longer than your limit."
        )
        assert reminders.active[OVERDUE_REMINDER_ID].hour == 9

        await store.add_item("Old Beans", "", NOW - timedelta(days=300))
        assert reminders.active[OVERDUE_REMINDER_ID].body == (
            "2 items have been in the freezer longer than your limit."
        )

        await store.set_threshold_months(24)
        assert OVERDUE_REMINDER_ID not in reminders.active

    @pytest.mark.asyncio
    async def test_unchanged_state_is_not_rescheduled(self, open_store, stocked_document, reminders):
        store = await open_store(stocked_document)
        await store.add_item("Old Peas", "", NOW - timedelta(days=200))
        await store.add_item("Fresh Peas", "", NOW)

        assert len(reminders.scheduled) == 1

    @pytest.mark.asyncio
    async def test_hour_change_reschedules(self, open_store, stocked_document, reminders):
        store = await open_store(stocked_document)
        await store.add_item("Old Peas", "", NOW - timedelta(days=200))

        await store.set_notification_hour(18)

        assert len(reminders.scheduled) == 2
        assert reminders.active[OVERDUE_REMINDER_ID].hour == 18

    @pytest.mark.asyncio
    async def test_time_passing_is_picked_up_on_refresh(self, open_store, stocked_document, reminders, clock):
        store = await open_store(stocked_document)
        clock.advance(days=200)

        store.refresh_notifications()

        assert reminders.active[OVERDUE_REMINDER_ID].body.startswith("3 items")


class TestReload:
    """Tests for picking up changes written by someone else."""

    @pytest.mark.asyncio
    async def test_reload_when_file_changed(self, open_store, stocked_document, repository, audit):
        store = await open_store(stocked_document)
        assert await store.reload_from_disk_if_changed() is False

        changed = stocked_document.model_copy(deep=True)
        changed.items = []
        await repository.save(changed)

        assert await store.reload_from_disk_if_changed() is True
        assert store.items == []
        assert audit.recent_events[0].event_type is AuditEventType.DOCUMENT_RELOADED

    @pytest.mark.asyncio
    async def test_local_repository_has_no_remote(self, open_store, stocked_document):
        store = await open_store(stocked_document)
        assert await store.handle_remote_change() is False
