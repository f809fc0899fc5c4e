"""Tests for drink lookup and the recent-drinks list."""

from caffeine_calc.core.drinks import group_drinks, load_catalog, resolve_drink, search_drinks, update_recent

CATALOG = [
    {"name": "Coffee", "caffeine_mg": 95, "category": "coffee"},
    {"name": "Cold brew", "caffeine_mg": 200, "category": "coffee"},
    {"name": "Iced coffee", "caffeine_mg": 90, "category": "coffee"},
    {"name": "Cola", "caffeine_mg": 34, "category": "soft_drink"},
]


class TestCatalog:
    def test_bundled_catalog_loads(self):
        catalog = load_catalog()
        by_name = {d.name: d for d in catalog}
        assert by_name["Espresso (single shot)"].caffeine_mg == 63
        assert all(d.source == "catalog" for d in catalog)
        assert by_name["Espresso (single shot)"].category == "coffee"


class TestResolveDrink:
    """Priority is custom > recent > catalog."""

    def test_custom_wins(self):
        drink = resolve_drink(
            "coffee",
            custom=[{"name": "COFFEE", "caffeine_mg": 120}],
            recent=[{"name": "Coffee", "caffeine_mg": 80}],
            catalog=CATALOG,
        )
        assert drink.caffeine_mg == 120
        assert drink.source == "custom"

    def test_recent_before_catalog(self):
        drink = resolve_drink("Coffee", recent=[{"name": "coffee", "caffeine_mg": 80}], catalog=CATALOG)
        assert drink.caffeine_mg == 80
        assert drink.source == "recent"

    def test_falls_back_to_catalog(self):
        drink = resolve_drink("  Cold Brew ", catalog=CATALOG)
        assert drink.caffeine_mg == 200
        assert drink.source == "catalog"
        assert drink.category == "coffee"

    def test_unknown_and_empty(self):
        assert resolve_drink("Hot chocolate", catalog=CATALOG) is None
        assert resolve_drink("", catalog=CATALOG) is None


class TestSearchDrinks:
    def test_prefix_before_substring(self):
        found = search_drinks("co", catalog=CATALOG)
        assert [d.name for d in found] == ["Coffee", "Cold brew", "Cola", "Iced coffee"]

    def test_each_name_once_under_best_source(self):
        found = search_drinks("coffee", recent=[{"name": "Coffee", "caffeine_mg": 80}], catalog=CATALOG)
        assert [(d.name, d.source) for d in found] == [("Coffee", "recent"), ("Iced coffee", "catalog")]

    def test_limit(self):
        assert len(search_drinks("", catalog=CATALOG, limit=2)) == 2


class TestUpdateRecent:
    def test_moves_to_front_without_duplicates(self):
        recent = [{"name": "A"}, {"name": "B"}, {"name": "C"}]
        assert update_recent({"name": "B"}, recent) == [{"name": "B"}, {"name": "A"}, {"name": "C"}]

    def test_capped_at_five(self):
        recent = [{"name": str(i)} for i in range(5)]
        updated = update_recent({"name": "new"}, recent)
        assert len(updated) == 5
        assert updated[0] == {"name": "new"}
        assert {"name": "4"} not in updated


class TestGroupDrinks:
    """Picker groups: custom, recent, then catalog categories."""

    def test_catalog_only_grouped_by_category(self):
        groups = group_drinks(catalog=CATALOG)
        assert [label for label, _ in groups] == ["coffee", "soft_drink"]
        assert [d.name for d in groups[0][1]] == ["Coffee", "Cold brew", "Iced coffee"]

    def test_custom_and_recent_come_first(self):
        groups = group_drinks(
            custom=[{"name": "My brew", "caffeine_mg": 150}],
            recent=[{"name": "Cola", "caffeine_mg": 34, "category": "soft_drink"}],
            catalog=CATALOG,
        )
        assert [label for label, _ in groups] == ["Custom Drinks", "Recent Drinks", "coffee", "soft_drink"]
        assert groups[1][1][0].category == "soft_drink"

    def test_missing_category_goes_to_other(self):
        groups = group_drinks(catalog=[{"name": "Mystery", "caffeine_mg": 10}])
        assert [(label, [d.name for d in drinks]) for label, drinks in groups] == [("other", ["Mystery"])]
