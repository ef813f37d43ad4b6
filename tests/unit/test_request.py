"""
Unit tests for the BatchGet request builder.

Tests how keys, projection and consistency are merged into a single
BatchGetItem request, and how key errors stay sticky until build time.
"""

from decimal import Decimal

import pytest

from dynabatch import MAX_BATCH_GET_KEYS, Keys, Table, ValidationError
from dynabatch.request import PendingRequest, compile_projection
from tests.helpers.responses import wire_key


@pytest.fixture
def table(mock_client):
    return Table("Reports", client=mock_client)


@pytest.mark.unit
class TestBuild:
    """Test merging keys into one request."""

    def test_hash_and_range_keys(self, table, requested_keys):
        pending = table.batch("ID", "Month").get(*[Keys(*k) for k in requested_keys]).build()

        assert isinstance(pending, PendingRequest)
        assert pending.table_name == "Reports"
        assert pending.keys == [
            wire_key(1, "2015-10"),
            wire_key(42, "2015-12"),
            wire_key(42, "1992-02"),
        ]
        assert pending.consistent_read is False
        assert pending.projection_expression is None

    def test_to_request_wire_shape(self, table):
        pending = table.batch("ID").get(1, 2).build()

        assert pending.to_request() == {
            "RequestItems": {"Reports": {"Keys": [{"ID": {"N": "1"}}, {"ID": {"N": "2"}}]}}
        }

    def test_and_appends_keys_in_order(self, table):
        pending = table.batch("ID").get(1).and_(2, 3).and_(4).build()

        assert [k["ID"]["N"] for k in pending.keys] == ["1", "2", "3", "4"]

    def test_range_value_ignored_without_range_key_name(self, table):
        pending = table.batch("ID").get(Keys(1, "2015-10")).build()

        assert pending.keys == [{"ID": {"N": "1"}}]

    def test_missing_range_value_sends_hash_key_only(self, table):
        pending = table.batch("ID", "Month").get(Keys(1)).build()

        assert pending.keys == [{"ID": {"N": "1"}}]

    def test_consistent_read(self, table):
        pending = table.batch("ID").get(1).consistent().build()
        assert pending.consistent_read is True
        assert pending.to_request()["RequestItems"]["Reports"]["ConsistentRead"] is True

        pending = table.batch("ID").get(1).consistent(True).consistent(False).build()
        assert "ConsistentRead" not in pending.to_request()["RequestItems"]["Reports"]

    def test_projection_applied_once_at_request_level(self, table):
        pending = table.batch("ID", "Month").get((1, "2015-10"), (2, "2015-11")).project(
            "ID", "views"
        ).build()

        request = pending.to_request()["RequestItems"]["Reports"]
        assert request["ProjectionExpression"] == "#p0, #p1"
        assert request["ExpressionAttributeNames"] == {"#p0": "ID", "#p1": "views"}
        # Keys themselves carry no projection
        assert all(set(k) == {"ID", "Month"} for k in request["Keys"])

    def test_key_value_types_are_serialized(self, table):
        pending = table.batch("ID").get(1.5, Decimal("2"), b"raw", "s").build()

        assert pending.keys == [
            {"ID": {"N": "1.5"}},
            {"ID": {"N": "2"}},
            {"ID": {"B": b"raw"}},
            {"ID": {"S": "s"}},
        ]

    def test_build_performs_no_io(self, table, mock_client):
        table.batch("ID").get(1).build()
        mock_client.batch_get_item.assert_not_called()


@pytest.mark.unit
class TestStickyErrors:
    """Key errors are captured and surfaced by build()."""

    def test_too_many_key_names(self, table):
        batch_get = table.batch("ID", "Month", "Extra").get((1, "2015-10"))

        # Nothing raised while building up the batch
        batch_get.and_((2, "2015-11")).consistent()

        with pytest.raises(ValidationError, match="hash key and range key"):
            batch_get.build()

    def test_invalid_range_value(self, table):
        batch_get = table.batch("ID", "Month").get((1, ["not", "a", "key"]))

        with pytest.raises(ValidationError, match="Month") as exc_info:
            batch_get.build()
        assert exc_info.value.field == "Month"

    def test_first_error_wins(self, table):
        batch_get = table.batch("ID", "Month").get((1, {"bad": "range"}))
        batch_get.and_((None, "2015-10"))

        with pytest.raises(ValidationError) as exc_info:
            batch_get.build()
        assert exc_info.value.field == "Month"

    def test_missing_hash_key_name(self, table):
        with pytest.raises(ValidationError, match="name of the hash key"):
            table.batch().get(1).build()

    def test_valid_keys_still_recorded_after_error(self, table):
        batch_get = table.batch("ID").get(None, 2, 3)

        assert len(batch_get.reqs) == 3
        assert batch_get.error is not None

    def test_empty_batch(self, table):
        with pytest.raises(ValidationError, match="at least one key"):
            table.batch("ID").get().build()

    def test_too_many_keys(self, table):
        batch_get = table.batch("ID").get(*range(MAX_BATCH_GET_KEYS + 1))

        with pytest.raises(ValidationError, match=f"at most {MAX_BATCH_GET_KEYS}"):
            batch_get.build()

    def test_duplicate_keys(self, table):
        batch_get = table.batch("ID", "Month").get((42, "2015-12"), (42, "2015-12"))

        with pytest.raises(ValidationError, match="duplicate"):
            batch_get.build()

    @pytest.mark.parametrize("same", [1.0, Decimal("1.00"), Decimal("1E+0")])
    def test_equal_numbers_are_duplicates(self, table, same):
        """The service compares Number keys by value, not by their text."""
        batch_get = table.batch("ID").get(1, same)

        with pytest.raises(ValidationError, match="duplicate"):
            batch_get.build()

    def test_different_numbers_are_not_duplicates(self, table):
        pending = table.batch("ID").get(1, 1.5, 10, Decimal("100")).build()
        assert len(pending.keys) == 4

    def test_number_and_string_are_not_duplicates(self, table):
        pending = table.batch("ID").get(1, "1").build()
        assert len(pending.keys) == 2

    def test_same_hash_different_range_is_not_duplicate(self, table):
        pending = table.batch("ID", "Month").get((42, "2015-12"), (42, "1992-02")).build()
        assert len(pending.keys) == 2


@pytest.mark.unit
class TestCompileProjection:
    """Test ProjectionExpression compilation."""

    def test_nested_paths_and_indexes(self):
        expression, names = compile_projection(("info.rating", "tags[0]", "info.plot"))

        assert expression == "#p0.#p1, #p2[0], #p0.#p3"
        assert names == {"#p0": "info", "#p1": "rating", "#p2": "tags", "#p3": "plot"}

    def test_reserved_words_are_placeholders(self):
        expression, names = compile_projection(("Year", "Name"))

        assert "Year" not in expression
        assert set(names.values()) == {"Year", "Name"}

    def test_invalid_path(self):
        with pytest.raises(ValidationError, match="Invalid projection path"):
            compile_projection(("info..rating",))
