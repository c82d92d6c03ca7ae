"""Tests for the ordering engine."""

import pytest

from chronicle.errors import ContractViolationError, EntityNotFoundError
from chronicle.graph import ordering
from chronicle.models import Era, TimelineEvent


def era(era_id: str, order: int) -> Era:
    return Era(id=era_id, name=era_id, order=order)


def event(event_id: str, era_id: str, order: int) -> TimelineEvent:
    return TimelineEvent(id=event_id, era_id=era_id, order=order, title=event_id)


class TestRenumber:
    def test_reorder_scenario(self):
        events = [event("ev_a", "E", 1), event("ev_b", "E", 2), event("ev_c", "E", 3)]
        result = ordering.renumber(events, ["ev_c", "ev_a", "ev_b"])
        assert [(e.id, e.order) for e in result] == [("ev_c", 1), ("ev_a", 2), ("ev_b", 3)]

    def test_identity_permutation_changes_nothing(self):
        eras = [era("E1", 1), era("E2", 2), era("E3", 3)]
        result = ordering.renumber(eras, ["E1", "E2", "E3"])
        assert all(new is old for new, old in zip(result, eras))

    def test_repairs_gapped_orders(self):
        eras = [era("E1", 4), era("E2", 9)]
        result = ordering.renumber(eras, ["E2", "E1"])
        assert [(e.id, e.order) for e in result] == [("E2", 1), ("E1", 2)]
        assert ordering.is_dense(result)

    def test_missing_member_rejected(self):
        eras = [era("E1", 1), era("E2", 2)]
        with pytest.raises(ContractViolationError) as exc:
            ordering.renumber(eras, ["E1"], scope="eras")
        assert exc.value.missing == ["E2"]

    def test_foreign_member_rejected(self):
        eras = [era("E1", 1)]
        with pytest.raises(ContractViolationError) as exc:
            ordering.renumber(eras, ["E1", "X"])
        assert exc.value.foreign == ["X"]

    def test_duplicate_rejected(self):
        eras = [era("E1", 1), era("E2", 2)]
        with pytest.raises(ContractViolationError) as exc:
            ordering.renumber(eras, ["E1", "E1", "E2"])
        assert exc.value.duplicates == ["E1"]

    def test_empty_scope(self):
        assert ordering.renumber([], []) == []


class TestCloseGaps:
    def test_keeps_relative_order(self):
        eras = [era("E3", 7), era("E1", 2), era("E2", 5)]
        result = ordering.close_gaps(eras)
        assert [(e.id, e.order) for e in result] == [("E1", 1), ("E2", 2), ("E3", 3)]

    def test_is_dense(self):
        assert ordering.is_dense([era("a", 2), era("b", 1)])
        assert not ordering.is_dense([era("a", 1), era("b", 3)])
        assert not ordering.is_dense([era("a", 1), era("b", 1)])
        assert ordering.is_dense([])


class TestDeleteEra:
    def test_cascade_scenario(self):
        eras = [era("E1", 1), era("E2", 2)]
        timeline = [event("ev1", "E1", 1), event("ev2", "E1", 2), event("ev3", "E2", 1)]

        new_eras, new_timeline = ordering.delete_era(eras, timeline, "E1")

        assert [(e.id, e.order) for e in new_eras] == [("E2", 1)]
        assert [e.id for e in new_timeline] == ["ev3"]
        assert not any(e.era_id == "E1" for e in new_timeline)

    def test_middle_era_keeps_density(self):
        eras = [era("E1", 1), era("E2", 2), era("E3", 3)]
        new_eras, _ = ordering.delete_era(eras, [], "E2")
        assert [(e.id, e.order) for e in new_eras] == [("E1", 1), ("E3", 2)]
        assert new_eras[0] is eras[0]

    def test_unknown_era(self):
        with pytest.raises(EntityNotFoundError):
            ordering.delete_era([era("E1", 1)], [], "nope")


class TestDeleteEvent:
    def test_renumbers_only_its_era(self):
        timeline = [
            event("a", "E1", 1),
            event("b", "E1", 2),
            event("c", "E1", 3),
            event("x", "E2", 1),
        ]
        result = ordering.delete_event(timeline, "a")
        assert [(e.id, e.order) for e in result] == [("b", 1), ("c", 2), ("x", 1)]
        assert result[2] is timeline[3]
        assert ordering.timeline_is_dense(result)

    def test_unknown_event(self):
        with pytest.raises(EntityNotFoundError):
            ordering.delete_event([], "ghost")


class TestPlanMove:
    @pytest.fixture
    def timeline(self):
        return [
            event("a", "E1", 1),
            event("b", "E1", 2),
            event("x", "E2", 1),
            event("y", "E2", 2),
        ]

    def test_append_by_default(self, timeline):
        origin, destination = ordering.plan_move(timeline, "a", "E2")
        assert origin == ["b"]
        assert destination == ["x", "y", "a"]

    def test_insert_at_position(self, timeline):
        _, destination = ordering.plan_move(timeline, "b", "E2", position=0)
        assert destination == ["b", "x", "y"]

    def test_move_into_empty_era(self, timeline):
        origin, destination = ordering.plan_move(timeline, "x", "E9")
        assert origin == ["y"]
        assert destination == ["x"]

    def test_within_same_era(self, timeline):
        _, destination = ordering.plan_move(timeline, "b", "E1", position=0)
        assert destination == ["b", "a"]

