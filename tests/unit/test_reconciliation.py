"""
Unit Tests - Change Reconciliation
"""
from structlog.testing import capture_logs

from stocksync.transformation.reconciliation import (
    ARTICLE_KEY_FIELDS,
    compute_delta,
    find_mixed_type_fields,
    index_by_key,
    normalize,
    parse_number,
    plan_change,
)


class TestComputeDelta:
    """Tests for compute_delta"""

    def test_numeric_string_equal_to_stored_number(self):
        assert compute_delta({"count": 5}, {"count": "5"}) == {}

    def test_numeric_string_differs_from_stored_number(self):
        assert compute_delta({"count": 5}, {"count": "6"}) == {"count": 6}

    def test_strings_compared_trimmed(self):
        assert compute_delta({"color": "Blue "}, {"color": " Blue"}) == {}

    def test_changed_string(self):
        assert compute_delta({"color": "Blue"}, {"color": "Red "}) == {"color": "Red"}

    def test_new_field_included(self):
        assert compute_delta({"color": "Blue"}, {"color": "Blue", "size": "M"}) == {"size": "M"}

    def test_stored_only_fields_never_removed(self):
        delta = compute_delta({"color": "Blue", "isUde": True}, {"color": "Blue"})

        assert delta == {}

    def test_stored_string_keeps_string(self):
        # Stored as text, so "5" stays text and matches
        assert compute_delta({"stock": "5"}, {"stock": "5"}) == {}

    def test_number_replacing_string(self):
        assert compute_delta({"totalStock": "8"}, {"totalStock": 8}) == {"totalStock": 8}

    def test_non_numeric_string_against_number(self):
        assert compute_delta({"count": 5}, {"count": "five"}) == {"count": "five"}

    def test_bool_not_numeric(self):
        assert compute_delta({"isActive": True}, {"isActive": 1}) == {"isActive": 1}
        assert compute_delta({"isActive": True}, {"isActive": True}) == {}

    def test_lists_compared_by_value(self):
        stored = {"sizesArray": ["M", "L"], "items": [{"sku": "A", "stock": "3"}]}

        assert compute_delta(stored, {"sizesArray": ["M", "L"], "items": [{"sku": "A", "stock": "3"}]}) == {}
        assert compute_delta(stored, {"sizesArray": ["M", "L", "XL"]}) == {"sizesArray": ["M", "L", "XL"]}


class TestNormalize:
    """Tests for value normalization"""

    def test_decimal_comma(self):
        assert parse_number("199,95") == 199.95
        assert parse_number("-4,5") == -4.5

    def test_comma_before_three_digits_not_parsed(self):
        assert parse_number("1,000") is None
        assert compute_delta({"costPrice": 1}, {"costPrice": "1,000"}) == {"costPrice": "1,000"}

    def test_not_a_number(self):
        assert parse_number("12 pcs") is None
        assert parse_number("nan") is None

    def test_only_parsed_against_numbers(self):
        assert normalize(" 5 ") == "5"
        assert normalize(" 5 ", 4) == 5


class TestPlanChange:
    """Tests for index_by_key and plan_change"""

    def test_unknown_key_is_create(self):
        change = plan_change({}, ("A", "100"), {"sku": "A", "itemNumber": "100", "stock": " 3"})

        assert change.is_new
        assert change.fields == {"sku": "A", "itemNumber": "100", "stock": "3"}

    def test_known_key_is_patch(self):
        index = index_by_key({"doc-1": {"sku": "A", "itemNumber": "100", "stock": "3"}}, ARTICLE_KEY_FIELDS)

        change = plan_change(index, ("A", "100"), {"sku": "A", "itemNumber": "100", "stock": "4"})

        assert not change.is_new
        assert change.doc_id == "doc-1"
        assert change.fields == {"stock": "4"}

    def test_unchanged_is_none(self):
        index = index_by_key({"doc-1": {"sku": "A", "itemNumber": "100"}}, ARTICLE_KEY_FIELDS)

        assert plan_change(index, ("A", "100"), {"sku": "A", "itemNumber": "100"}) is None

    def test_repeated_key_diffs_against_previous_write(self):
        index = {}
        first = plan_change(index, ("A", "100"), {"sku": "A", "itemNumber": "100"})
        second = plan_change(index, ("A", "100"), {"sku": "A", "itemNumber": "100"})

        assert first.is_new
        assert second is None

    def test_duplicates_first_doc_id_wins(self):
        documents = {
            "b": {"sku": "A", "itemNumber": "100"},
            "a": {"sku": "A", "itemNumber": "100"},
        }

        with capture_logs() as logs:
            index = index_by_key(documents, ARTICLE_KEY_FIELDS)

        assert index[("A", "100")][0] == "a"
        assert any(entry["event"] == "Duplicate documents for identity key" for entry in logs)


class TestMixedTypes:
    def test_detects_number_and_string(self):
        mixed = find_mixed_type_fields([{"stock": 5}, {"stock": "5"}, {"color": "Blue"}])

        assert mixed == {"stock": {"number", "string"}}

    def test_bool_separate_from_number(self):
        assert find_mixed_type_fields([{"flag": True}, {"flag": 1}]) == {"flag": {"boolean", "number"}}
