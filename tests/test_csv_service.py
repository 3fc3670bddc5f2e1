"""Tests for CSV import, export and templates."""
import pytest

from core.exceptions import BulkLoadValidationError
from services import csv_service
from services.bulk_load_service import parse_participants, parse_schools
from factories import make_participant, make_school


class TestParticipantsCsv:

    def test_parses_bom_quotes_and_header_case(self):
        text = (
            "\ufeffID,Name,Rank,NeedsDoubleSemester\r\n"
            '1,"Chen, Alice",1,yes\r\n'
            '2,"Bob ""The Builder"" Smith",2,false\r\n'
            "\r\n"
            "3,王小明,3,是\r\n"
        )

        rows = csv_service.parse_participants_csv(text)

        assert rows == [
            {"id": 1, "name": "Chen, Alice", "rank": 1, "needsSecondRound": True},
            {"id": 2, "name": 'Bob "The Builder" Smith', "rank": 2, "needsSecondRound": False},
            {"id": 3, "name": "王小明", "rank": 3, "needsSecondRound": True},
        ]
        assert len(parse_participants(rows)) == 3

    def test_optional_columns_and_skipped_rows(self):
        rows = csv_service.parse_participants_csv("id,name,rank\n,Alice,1\n5,,2\n7,Bob,3\n")

        # id 空白時用資料列序號；姓名空白的列略過
        assert rows == [
            {"id": 1, "name": "Alice", "rank": 1, "needsSecondRound": True},
            {"id": 7, "name": "Bob", "rank": 3, "needsSecondRound": True},
        ]

    def test_requires_header_and_data(self):
        with pytest.raises(BulkLoadValidationError, match="at least one data row"):
            csv_service.parse_participants_csv("id,name,rank\n")
        with pytest.raises(BulkLoadValidationError, match="id, name, rank"):
            csv_service.parse_participants_csv("id,name\n1,Alice\n")

    def test_rejects_non_integer_rank(self):
        with pytest.raises(BulkLoadValidationError, match="Line 1: rank"):
            csv_service.parse_participants_csv("id,name,rank\n1,Alice,first\n")


class TestSchoolsCsv:

    def test_parses_rows_with_default_seats(self):
        text = "id,name,country,slotsFall,slotsSpring\n1,\"Tokyo, Univ.\",Japan,1,\n2,ETH,Switzerland,2,0\n"

        rows = csv_service.parse_schools_csv(text)

        assert rows[0] == {
            "id": 1, "name": "Tokyo, Univ.", "country": "Japan",
            "slotsFall": 1, "slotsSpring": 0, "slotsFlexible": 0,
        }
        schools = parse_schools(rows)
        assert schools[1].seats_fall == 2

    def test_requires_name_and_country(self):
        with pytest.raises(BulkLoadValidationError, match="name, country"):
            csv_service.parse_schools_csv("id,name\n1,ETH\n")

    def test_rejects_non_integer_seats(self):
        with pytest.raises(BulkLoadValidationError, match="slotsFlexible"):
            csv_service.parse_schools_csv("name,country,slotsFlexible\nETH,CH,many\n")


def test_export_escapes_and_prefixes_bom():
    content = csv_service.participants_to_csv([
        make_participant(2, rank=2, name="Bob", needs_second_round=False),
        make_participant(1, rank=1, name="Chen, Alice"),
    ])

    assert content.startswith("\ufeff")
    assert content[1:].splitlines() == [
        "id,name,rank,needsDoubleSemester",
        '1,"Chen, Alice",1,true',
        "2,Bob,2,false",
    ]


def test_schools_export_can_be_loaded_again():
    content = csv_service.schools_to_csv([make_school(1, fall=1, spring=2, flexible=3, name="ETH", country="CH")])

    schools = parse_schools(csv_service.parse_schools_csv(content))

    assert schools == [make_school(1, fall=1, spring=2, flexible=3, name="ETH", country="CH")]


def test_templates_are_valid_imports():
    assert len(parse_participants(csv_service.parse_participants_csv(csv_service.participants_template()))) == 4
    assert len(parse_schools(csv_service.parse_schools_csv(csv_service.schools_template()))) == 3
