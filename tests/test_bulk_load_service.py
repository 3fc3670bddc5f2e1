"""Tests for admin bulk-load validation."""
import pytest

from core.exceptions import BulkLoadValidationError
from services.bulk_load_service import parse_participants, parse_schools


class TestParseParticipants:

    def test_accepts_current_and_legacy_field_names(self):
        participants = parse_participants([
            {"id": 1, "name": " Alice Chen ", "rank": 2, "needsSecondRound": False},
            {"id": 2, "name": "Bob Smith", "rank": 1, "needsDoubleSemester": False},
            {"id": 3, "name": "Charlie Kim", "rank": 3},
        ])

        assert [p.name for p in participants] == ["Alice Chen", "Bob Smith", "Charlie Kim"]
        assert [p.needs_second_round for p in participants] == [False, False, True]

    def test_rejects_non_array(self):
        with pytest.raises(BulkLoadValidationError, match="must be an array"):
            parse_participants({"id": 1, "name": "Alice", "rank": 1})

    def test_rejects_missing_field(self):
        with pytest.raises(BulkLoadValidationError, match="rank"):
            parse_participants([{"id": 1, "name": "Alice"}])

    def test_does_not_coerce_types(self):
        with pytest.raises(BulkLoadValidationError):
            parse_participants([{"id": 1, "name": "Alice", "rank": "1"}])
        with pytest.raises(BulkLoadValidationError):
            parse_participants([{"id": 1, "name": "Alice", "rank": 1, "needsSecondRound": "yes"}])

    def test_rejects_blank_name(self):
        with pytest.raises(BulkLoadValidationError, match="name"):
            parse_participants([{"id": 1, "name": "   ", "rank": 1}])

    def test_rejects_duplicate_rank(self):
        with pytest.raises(BulkLoadValidationError, match="Duplicate participant rank: 1"):
            parse_participants([
                {"id": 1, "name": "Alice", "rank": 1},
                {"id": 2, "name": "Bob", "rank": 1},
            ])


class TestParseSchools:

    def test_accepts_locale_and_seat_aliases(self):
        schools = parse_schools([
            {"id": 1, "name": "ETH Zurich", "locale": "Switzerland",
             "seatsPrimaryTerm": 2, "seatsSecondaryTerm": 0, "seatsFlexible": 1},
            {"id": 2, "name": "Univ. of Tokyo", "country": "Japan",
             "slotsFall": 1, "slotsSpring": 1, "slotsFlexible": 1},
        ])

        assert schools[0].country == "Switzerland"
        assert (schools[0].seats_fall, schools[0].seats_spring, schools[0].seats_flexible) == (2, 0, 1)
        assert schools[1].seats_spring == 1

    def test_rejects_negative_seats(self):
        with pytest.raises(BulkLoadValidationError, match="greater than or equal to 0"):
            parse_schools([{"id": 1, "name": "X", "country": "Y",
                            "slotsFall": -1, "slotsSpring": 0, "slotsFlexible": 0}])

    def test_rejects_duplicate_id(self):
        row = {"id": 1, "name": "X", "country": "Y", "slotsFall": 1, "slotsSpring": 0, "slotsFlexible": 0}
        with pytest.raises(BulkLoadValidationError, match="Duplicate school id"):
            parse_schools([row, dict(row)])

    def test_rejects_non_array(self):
        with pytest.raises(BulkLoadValidationError):
            parse_schools("not a list")
