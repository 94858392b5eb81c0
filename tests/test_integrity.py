"""Unit tests for the referential integrity checker."""

import copy

import pytest

from boardstore.errors import SchemaViolationError
from boardstore.models import Snapshot
from boardstore.services import IntegrityChecker

TS = "2025-01-15T10:30:00+00:00"


def board(board_id: str, column_ids: list[str]) -> dict:
    return {
        "id": board_id,
        "title": board_id.upper(),
        "description": "",
        "columnIds": list(column_ids),
        "createdAt": TS,
        "updatedAt": TS,
    }


def column(column_id: str, board_id: str, card_ids: list[str], order: int = 0) -> dict:
    return {
        "id": column_id,
        "title": column_id.upper(),
        "boardId": board_id,
        "cardIds": list(card_ids),
        "order": order,
        "createdAt": TS,
        "updatedAt": TS,
    }


def card(card_id: str, column_id: str, board_id: str, order: int = 0) -> dict:
    return {
        "id": card_id,
        "title": card_id.upper(),
        "description": "",
        "labels": [],
        "assignee": "",
        "columnId": column_id,
        "boardId": board_id,
        "order": order,
        "createdAt": TS,
        "updatedAt": TS,
    }


@pytest.fixture
def checker() -> IntegrityChecker:
    return IntegrityChecker()


@pytest.fixture
def consistent() -> Snapshot:
    """One board, two columns, three cards, all references consistent."""
    return Snapshot.from_records(
        boards=[board("b1", ["c1", "c2"])],
        columns=[column("c1", "b1", ["k1", "k2"]), column("c2", "b1", ["k3"], order=1)],
        cards=[card("k1", "c1", "b1"), card("k2", "c1", "b1", 1), card("k3", "c2", "b1")],
    )


class TestConsistentSnapshot:
    """A consistent snapshot passes untouched."""

    def test_no_diagnostics(self, checker: IntegrityChecker, consistent: Snapshot):
        report = checker.check(consistent)
        assert report.diagnostics == []
        assert not report.healed
        assert report.snapshot == consistent

    def test_empty_snapshot(self, checker: IntegrityChecker):
        report = checker.check(Snapshot())
        assert report.snapshot.is_empty()
        assert not report.healed

    def test_input_is_not_mutated(self, checker: IntegrityChecker, consistent: Snapshot):
        """Healing happens on a copy."""
        consistent.columns["c1"]["cardIds"] = ["k1"]  # k2 now missing from its column
        before = copy.deepcopy(consistent)

        report = checker.check(consistent)

        assert report.healed
        assert consistent == before


class TestHardViolations:
    """Malformed records abort the check."""

    def test_card_missing_column_id(self, checker: IntegrityChecker, consistent: Snapshot):
        del consistent.cards["k2"]["columnId"]

        with pytest.raises(SchemaViolationError) as exc_info:
            checker.check(consistent)

        assert exc_info.value.collection == "cards"
        assert exc_info.value.record_id == "k2"
        assert "columnId" in str(exc_info.value)

    def test_board_with_wrong_type(self, checker: IntegrityChecker, consistent: Snapshot):
        consistent.boards["b1"]["title"] = 42

        with pytest.raises(SchemaViolationError) as exc_info:
            checker.check(consistent)

        assert exc_info.value.collection == "boards"
        assert exc_info.value.record_id == "b1"

    def test_record_stored_under_other_key(self, checker: IntegrityChecker, consistent: Snapshot):
        consistent.columns["c9"] = consistent.columns.pop("c2")

        with pytest.raises(SchemaViolationError) as exc_info:
            checker.check(consistent)

        assert exc_info.value.record_id == "c9"

    def test_schema_violation_is_value_error(self, checker: IntegrityChecker):
        snapshot = Snapshot(cards={"k1": {"id": "k1"}})
        with pytest.raises(ValueError):
            checker.check(snapshot)


class TestSoftViolations:
    """Cross-reference drift is healed."""

    def test_card_missing_from_column_is_appended(
        self, checker: IntegrityChecker, consistent: Snapshot
    ):
        consistent.columns["c1"]["cardIds"] = ["k1"]

        report = checker.check(consistent)

        assert report.snapshot.columns["c1"]["cardIds"] == ["k1", "k2"]
        assert report.healed
        assert any("k2 appended" in d.message for d in report.diagnostics)

    def test_column_missing_from_board_is_appended(
        self, checker: IntegrityChecker, consistent: Snapshot
    ):
        consistent.boards["b1"]["columnIds"] = ["c2"]

        report = checker.check(consistent)

        assert report.snapshot.boards["b1"]["columnIds"] == ["c2", "c1"]

    def test_card_column_id_rewritten_to_listing_column(
        self, checker: IntegrityChecker, consistent: Snapshot
    ):
        """A card listed by c2 but pointing at c1 is moved to c2."""
        consistent.columns["c1"]["cardIds"] = ["k1"]
        consistent.columns["c2"]["cardIds"] = ["k3", "k2"]

        report = checker.check(consistent)

        assert report.snapshot.cards["k2"]["columnId"] == "c2"
        assert report.snapshot.columns["c1"]["cardIds"] == ["k1"]

    def test_column_board_id_rewritten(self, checker: IntegrityChecker, consistent: Snapshot):
        consistent.columns["c2"]["boardId"] = "elsewhere"

        report = checker.check(consistent)

        assert report.snapshot.columns["c2"]["boardId"] == "b1"
        assert any(d.record_id == "c2" for d in report.diagnostics)

    def test_card_board_id_follows_column(self, checker: IntegrityChecker, consistent: Snapshot):
        consistent.cards["k3"]["boardId"] = "b2"

        report = checker.check(consistent)

        assert report.snapshot.cards["k3"]["boardId"] == "b1"

    def test_missing_child_dropped_from_sequence(
        self, checker: IntegrityChecker, consistent: Snapshot
    ):
        consistent.columns["c1"]["cardIds"].append("ghost")
        consistent.boards["b1"]["columnIds"].append("ghost-column")

        report = checker.check(consistent)

        assert report.snapshot.columns["c1"]["cardIds"] == ["k1", "k2"]
        assert report.snapshot.boards["b1"]["columnIds"] == ["c1", "c2"]

    def test_duplicate_ids_collapsed(self, checker: IntegrityChecker, consistent: Snapshot):
        consistent.columns["c1"]["cardIds"] = ["k1", "k2", "k1"]

        report = checker.check(consistent)

        assert report.snapshot.columns["c1"]["cardIds"] == ["k1", "k2"]

    def test_column_claimed_by_two_boards(self, checker: IntegrityChecker, consistent: Snapshot):
        """The first board listing a column keeps it."""
        consistent.boards["b2"] = board("b2", ["c2"])

        report = checker.check(consistent)

        assert report.snapshot.boards["b1"]["columnIds"] == ["c1", "c2"]
        assert report.snapshot.boards["b2"]["columnIds"] == []
        assert report.snapshot.columns["c2"]["boardId"] == "b1"

    def test_orphan_column_removed_with_cards(
        self, checker: IntegrityChecker, consistent: Snapshot
    ):
        consistent.columns["c9"] = column("c9", "missing-board", ["k9"])
        consistent.cards["k9"] = card("k9", "c9", "missing-board")

        report = checker.check(consistent)

        assert "c9" not in report.snapshot.columns
        assert "k9" not in report.snapshot.cards
        assert len(report.snapshot.cards) == 3

    def test_orphan_card_removed(self, checker: IntegrityChecker, consistent: Snapshot):
        consistent.cards["k9"] = card("k9", "missing-column", "b1")

        report = checker.check(consistent)

        assert "k9" not in report.snapshot.cards
        assert str(report.diagnostics[0]) == (
            "cards/k9: orphan removed (column missing-column does not exist)"
        )

    def test_heals_are_logged(
        self, checker: IntegrityChecker, consistent: Snapshot, caplog: pytest.LogCaptureFixture
    ):
        consistent.columns["c1"]["cardIds"] = ["k1"]

        with caplog.at_level("WARNING", logger="boardstore"):
            checker.check(consistent)

        assert "k2 appended" in caplog.text
