#!/usr/bin/env python3
"""
Catalog construction, lookup and JSON loading
"""
import json

import pytest

from xp_badge_system.config import Settings
from xp_badge_system.core.catalog import (
    BUILTIN_CATALOGS,
    CLASSIC_CATALOG,
    EXTENDED_CATALOG,
    BadgeCatalog,
    BadgeTier,
    get_catalog,
    load_catalog_file,
    resolve_catalog,
)
from xp_badge_system.exceptions import CatalogError, InvalidArgumentError


class TestBuiltinCatalogs:

    @pytest.mark.unit
    def test_classic_thresholds(self):
        assert CLASSIC_CATALOG.thresholds == [10, 50, 100, 250, 500, 1000]

    @pytest.mark.unit
    def test_extended_thresholds(self):
        assert EXTENDED_CATALOG.thresholds == [10, 50, 100, 200, 350, 500, 750, 1000, 1500]

    @pytest.mark.unit
    def test_registry(self):
        assert set(BUILTIN_CATALOGS) == {"classic", "extended"}

    @pytest.mark.unit
    def test_label_keys_default_to_camel_case(self):
        assert CLASSIC_CATALOG.get("first_steps").label_key == "badge.firstSteps"
        assert CLASSIC_CATALOG.get("dedicated_learner").label_key == "badge.dedicatedLearner"
        assert CLASSIC_CATALOG.get("legend").label_key == "badge.legend"

    @pytest.mark.unit
    def test_bounds(self):
        assert CLASSIC_CATALOG.lowest_threshold == 10
        assert CLASSIC_CATALOG.highest_threshold == 1000
        empty = BadgeCatalog("empty", [])
        assert empty.lowest_threshold is None
        assert empty.highest_threshold is None
        assert len(empty) == 0

    @pytest.mark.unit
    def test_position_puts_unknown_last(self):
        assert CLASSIC_CATALOG.position("first_steps") == 0
        assert CLASSIC_CATALOG.position("bookworm") == len(CLASSIC_CATALOG)


class TestCatalogValidation:

    @pytest.mark.unit
    def test_rejects_equal_thresholds(self):
        with pytest.raises(CatalogError):
            BadgeCatalog("bad", [BadgeTier("a", 10), BadgeTier("b", 10)])

    @pytest.mark.unit
    def test_rejects_decreasing_thresholds(self):
        with pytest.raises(CatalogError):
            BadgeCatalog("bad", [BadgeTier("a", 50), BadgeTier("b", 10)])

    @pytest.mark.unit
    def test_rejects_duplicate_ids(self):
        with pytest.raises(CatalogError):
            BadgeCatalog("bad", [BadgeTier("a", 10), BadgeTier("a", 20)])

    @pytest.mark.unit
    @pytest.mark.parametrize("threshold", [-1, 1.5, "10", True])
    def test_rejects_bad_threshold(self, threshold):
        with pytest.raises(CatalogError):
            BadgeCatalog("bad", [BadgeTier("a", threshold)])

    @pytest.mark.unit
    @pytest.mark.parametrize("badge_id", ["", None, 7])
    def test_rejects_bad_identifier(self, badge_id):
        with pytest.raises(CatalogError):
            BadgeCatalog("bad", [BadgeTier(badge_id, 10)])

    @pytest.mark.unit
    def test_catalog_error_is_invalid_argument(self):
        assert issubclass(CatalogError, InvalidArgumentError)


class TestCatalogLookup:

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["classic", "CLASSIC", " Classic "])
    def test_case_insensitive(self, name):
        assert get_catalog(name) is CLASSIC_CATALOG

    @pytest.mark.unit
    def test_unknown_name(self):
        with pytest.raises(CatalogError) as exc_info:
            get_catalog("platinum")
        assert "classic" in str(exc_info.value)

    @pytest.mark.unit
    def test_resolve_by_name(self):
        assert resolve_catalog(Settings(badge_catalog="extended")) is EXTENDED_CATALOG

    @pytest.mark.unit
    def test_resolve_file_wins_over_name(self, tmp_path):
        path = tmp_path / "school.json"
        path.write_text(json.dumps([{"badge_id": "starter", "threshold": 5}]))

        catalog = resolve_catalog(Settings(badge_catalog="extended", badge_catalog_file=str(path)))

        assert catalog.name == "school"
        assert catalog.badge_ids == ["starter"]


class TestCatalogFiles:

    @pytest.mark.unit
    def test_load_list_format(self, tmp_path):
        path = tmp_path / "custom.json"
        path.write_text(json.dumps([
            {"badge_id": "newcomer", "threshold": 0},
            {"id": "regular", "threshold": 30, "title": "Regular Visitor"},
        ]))

        catalog = load_catalog_file(path)

        assert catalog.name == "custom"
        assert catalog.badge_ids == ["newcomer", "regular"]
        assert catalog.get("regular").title == "Regular Visitor"
        assert catalog.get("newcomer").title == "Newcomer"

    @pytest.mark.unit
    def test_load_named_format(self, tmp_path):
        path = tmp_path / "file.json"
        path.write_text(json.dumps(EXTENDED_CATALOG.to_dict()))

        assert load_catalog_file(path) == EXTENDED_CATALOG

    @pytest.mark.unit
    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            load_catalog_file(tmp_path / "nope.json")

    @pytest.mark.unit
    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(CatalogError):
            load_catalog_file(path)

    @pytest.mark.unit
    def test_unsorted_table_in_file(self, tmp_path):
        path = tmp_path / "unsorted.json"
        path.write_text(json.dumps([
            {"badge_id": "b", "threshold": 20},
            {"badge_id": "a", "threshold": 10},
        ]))
        with pytest.raises(CatalogError):
            load_catalog_file(path)

    @pytest.mark.unit
    def test_missing_threshold(self):
        with pytest.raises(CatalogError):
            BadgeCatalog.from_dict([{"badge_id": "a"}])

    @pytest.mark.unit
    def test_tiers_must_be_list(self):
        with pytest.raises(CatalogError):
            BadgeCatalog.from_dict({"name": "x", "tiers": "nope"})
