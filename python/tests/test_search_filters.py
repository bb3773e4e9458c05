"""Tests for search filter state."""

from later.services.search import ContentType, SearchFilters, SearchFiltersController
from tests.helpers import SPACE_ID


class TestSearchFilters:
    def test_default_is_unfiltered(self):
        filters = SearchFilters()
        assert filters.content_types is None
        assert filters.tags is None
        assert not filters.has_active_filters

    def test_replace_keeps_unspecified_fields(self):
        filters = SearchFilters(tags=("work",))
        updated = filters.replace(content_types=[ContentType.NOTE])
        assert updated.content_types == frozenset({ContentType.NOTE})
        assert updated.tags == ("work",)
        assert updated.has_active_filters

    def test_replace_clear_flags(self):
        filters = SearchFilters(content_types=frozenset({ContentType.LIST}), tags=("work",))
        cleared = filters.replace(clear_content_types=True, clear_tags=True)
        assert cleared == SearchFilters()

    def test_to_query(self):
        filters = SearchFilters(content_types=frozenset({ContentType.TODO_ITEM}), tags=("home",))
        query = filters.to_query("milk", SPACE_ID, limit=10)
        assert query.phrase == "milk"
        assert query.space_id == SPACE_ID
        assert query.content_types == frozenset({ContentType.TODO_ITEM})
        assert query.tags == ("home",)
        assert query.limit == 10
        assert query.offset == 0


class TestSearchFiltersController:
    def test_set_content_types(self):
        controller = SearchFiltersController()
        controller.set_content_types([ContentType.NOTE, ContentType.LIST_ITEM])
        assert controller.state.content_types == frozenset(
            {ContentType.NOTE, ContentType.LIST_ITEM}
        )

    def test_empty_content_types_clear_filter(self):
        controller = SearchFiltersController()
        controller.set_content_types([ContentType.NOTE])
        controller.set_content_types([])
        assert controller.state.content_types is None

    def test_tags_cleaned(self):
        controller = SearchFiltersController()
        controller.set_tags([" work ", "", "work", "home"])
        assert controller.state.tags == ("work", "home")

    def test_blank_tags_clear_filter(self):
        controller = SearchFiltersController(SearchFilters(tags=("work",)))
        controller.set_tags(["  "])
        assert controller.state.tags is None

    def test_reset(self):
        controller = SearchFiltersController()
        controller.set_content_types([ContentType.NOTE])
        controller.set_tags(["work"])
        controller.reset()
        assert controller.state == SearchFilters()

    def test_listeners_notified_on_change_only(self):
        controller = SearchFiltersController()
        seen: list[SearchFilters] = []
        unsubscribe = controller.subscribe(seen.append)

        controller.set_tags(["work"])
        controller.set_tags(["work"])
        unsubscribe()
        controller.reset()

        assert seen == [SearchFilters(tags=("work",))]
