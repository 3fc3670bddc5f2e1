"""Builders for core snapshot objects used across tests."""
from models import ParticipantStatus
from core.snapshot import AllocationSnapshot, ParticipantState, SchoolState


def make_participant(id, rank=None, status=ParticipantStatus.WAITING, needs_second_round=True,
                     round1_pick=None, round2_pick=None, name=None):
    return ParticipantState(
        id=id,
        name=name or f"Student {id}",
        rank=rank if rank is not None else id,
        status=status,
        needs_second_round=needs_second_round,
        round1_pick=round1_pick,
        round2_pick=round2_pick,
    )


def make_school(id, fall=0, spring=0, flexible=0, name=None, country="Testland"):
    return SchoolState(
        id=id,
        name=name or f"School {id}",
        country=country,
        seats_fall=fall,
        seats_spring=spring,
        seats_flexible=flexible,
    )


def make_snapshot(participants, schools, current_round=1, version=0):
    return AllocationSnapshot(
        version=version,
        current_round=current_round,
        participants=tuple(participants),
        schools=tuple(schools),
    )
