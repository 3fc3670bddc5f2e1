"""Tests for seat charging and fallback to flexible seats."""
import pytest

from models import Term
from core.capacity_ledger import can_seat, charge, remaining_seats, total_remaining_seats
from core.exceptions import NoCapacity
from factories import make_school


class TestCharge:

    def test_charges_term_seat_first(self):
        school = make_school(1, fall=2, spring=1, flexible=1)

        result = charge(school, Term.FALL)

        assert result.consumed_flexible is False
        assert result.school.seats_fall == 1
        assert result.school.seats_spring == 1
        assert result.school.seats_flexible == 1
        # 原快照不變
        assert school.seats_fall == 2

    def test_spring_charges_spring_counter(self):
        result = charge(make_school(1, fall=1, spring=1), Term.SPRING)

        assert result.school.seats_spring == 0
        assert result.school.seats_fall == 1

    def test_falls_back_to_flexible_seat(self):
        result = charge(make_school(1, fall=0, spring=3, flexible=1), Term.FALL)

        assert result.consumed_flexible is True
        assert result.school.seats_flexible == 0
        assert result.school.seats_spring == 3

    def test_no_capacity_when_term_and_flexible_exhausted(self):
        school = make_school(7, fall=2, spring=0, flexible=0)

        with pytest.raises(NoCapacity) as exc:
            charge(school, Term.SPRING)

        assert exc.value.school_id == 7
        assert exc.value.term == Term.SPRING

    def test_each_charge_removes_exactly_one_seat_until_exhausted(self):
        school = make_school(1, fall=2, spring=1, flexible=2)
        term_cycle = [Term.FALL, Term.SPRING] * 5

        for term in term_cycle:
            if not can_seat(school, term):
                with pytest.raises(NoCapacity):
                    charge(school, term)
                continue
            before = remaining_seats(school)
            school = charge(school, term).school
            assert remaining_seats(school) == before - 1
            assert min(school.seats_fall, school.seats_spring, school.seats_flexible) >= 0

        assert remaining_seats(school) == 0


def test_total_remaining_seats():
    schools = [make_school(1, fall=1, spring=1), make_school(2, flexible=3)]

    assert total_remaining_seats(schools) == 5
    assert total_remaining_seats([]) == 0
