"""
Integration tests for the scheduler over an in-memory store.

Covers due selection, the grading lifecycle, dependency gating and
suspension.
"""

from datetime import timedelta

import pytest

from mnemo.core.errors import (
    CycleDetected,
    InvalidGrade,
    ItemNotDue,
    ItemNotFound,
    ItemSuspended,
    SelfDependency,
    StorageFailure,
)
from mnemo.core.items import DependencyEdge, ItemStatus
from mnemo.delivery.scheduler import Scheduler, SchedulerConfig
from mnemo.delivery.topics import TopicService


def make_active(scheduler, now, question="Q", topic_id=None):
    item = scheduler.create_item(question, "A", topic_id=topic_id, now=now)
    return scheduler.activate(item.id, now)


def grade_when_due(scheduler, item_id, grade):
    """Grade an item at exactly its due time."""
    item = scheduler.store.load_item(item_id)
    return scheduler.grade_review(item_id, grade, item.next_due)


def drive_to_complete(scheduler, item_id):
    outcome = None
    for _ in range(10):
        outcome = grade_when_due(scheduler, item_id, 5)
        if outcome.item.status == ItemStatus.COMPLETE:
            return outcome
    raise AssertionError("item never completed")


def drive_to_resolved(scheduler, item_id):
    drive_to_complete(scheduler, item_id)
    outcome = grade_when_due(scheduler, item_id, 5)
    assert outcome.item.status == ItemStatus.RESOLVED
    return outcome


class TestCreateAndActivate:
    def test_new_item_is_initiated_and_not_due(self, scheduler, now):
        item = scheduler.create_item("Q", "A", now=now)

        assert item.status == ItemStatus.INITIATED
        assert item.memory.strength == 0.0
        assert item.memory.stability == 1.0
        assert scheduler.next_due_item(now) is None

    def test_activate_makes_due_now(self, scheduler, now):
        item = make_active(scheduler, now)
        assert item.status == ItemStatus.ACTIVE
        assert scheduler.next_due_item(now).id == item.id

    def test_activate_twice_is_noop(self, scheduler, now, sample_item):
        again = scheduler.activate(sample_item.id, now + timedelta(days=1))
        assert again.next_due == now

    def test_unknown_topic_rejected(self, scheduler, now):
        with pytest.raises(ItemNotFound):
            scheduler.create_item("Q", topic_id=7, now=now)

    def test_grading_initiated_item_not_due(self, scheduler, now):
        item = scheduler.create_item("Q", now=now)
        with pytest.raises(ItemNotDue):
            scheduler.grade_review(item.id, 4, now)


class TestGrading:
    def test_passing_grade_reschedules_and_logs(self, scheduler, store, now, sample_item):
        outcome = scheduler.grade_review(sample_item.id, 4, now, latency_ms=1200)

        item = outcome.item
        assert item.status == ItemStatus.ACTIVE
        assert item.memory.stability > 1.0
        assert item.next_due > now
        assert item.last_review == now
        assert not outcome.status_changed

        reviews = store.load_reviews(sample_item.id)
        assert len(reviews) == 1
        assert reviews[0].grade == 4
        assert reviews[0].latency_ms == 1200

    def test_failing_grade_resets(self, scheduler, now, sample_item):
        grade_when_due(scheduler, sample_item.id, 5)
        outcome = grade_when_due(scheduler, sample_item.id, 1)

        assert outcome.item.memory.stability == 1.0
        assert outcome.item.next_due == outcome.record.timestamp + timedelta(minutes=10)

    def test_second_grade_at_same_instant_rejected(self, scheduler, store, now, sample_item):
        scheduler.grade_review(sample_item.id, 1, now)
        due = store.load_item(sample_item.id).next_due

        with pytest.raises(ItemNotDue):
            scheduler.grade_review(sample_item.id, 1, now)
        with pytest.raises(ItemNotDue):
            scheduler.grade_review(sample_item.id, 1, due - timedelta(seconds=1))
        assert len(store.load_reviews(sample_item.id)) == 1

    def test_invalid_grade_changes_nothing(self, scheduler, store, now, sample_item):
        with pytest.raises(InvalidGrade):
            scheduler.grade_review(sample_item.id, 6, now)
        assert store.load_item(sample_item.id) == sample_item
        assert store.load_reviews(sample_item.id) == []

    def test_storage_failure_is_atomic(self, scheduler, store, now, sample_item, monkeypatch):
        def broken_append(record):
            raise StorageFailure("disk full")

        monkeypatch.setattr(store, "append_review", broken_append)

        with pytest.raises(StorageFailure):
            scheduler.grade_review(sample_item.id, 5, now)

        assert store.load_item(sample_item.id) == sample_item

    def test_overdue_pass_is_not_offered_again(self, scheduler, now, sample_item):
        late = now + timedelta(days=30)

        outcome = scheduler.grade_review(sample_item.id, 4, late)

        assert outcome.item.next_due > late
        assert scheduler.next_due_item(late) is None
        with pytest.raises(ItemNotDue):
            scheduler.grade_review(sample_item.id, 4, late + timedelta(seconds=1))

    def test_backfill_ignores_due_time(self, scheduler, store, now, sample_item):
        scheduler.grade_review(sample_item.id, 4, now)
        outcome = scheduler.backfill_review(sample_item.id, 3, now + timedelta(hours=1))
        assert outcome.record.grade == 3
        assert len(store.load_reviews(sample_item.id)) == 2


class TestLifecycle:
    def test_active_to_complete(self, scheduler, sample_item):
        outcome = drive_to_complete(scheduler, sample_item.id)

        assert outcome.status_changed
        assert outcome.previous_status == ItemStatus.ACTIVE
        assert outcome.item.memory.strength >= 0.9
        assert outcome.item.completed_at == outcome.record.timestamp

    def test_complete_not_offered_as_active(self, scheduler, sample_item):
        outcome = drive_to_complete(scheduler, sample_item.id)
        later = outcome.item.next_due
        assert scheduler.next_due_item(later) is None
        assert [i.id for i in scheduler.pending_resolution(later)] == [sample_item.id]

    def test_complete_resolves_after_window(self, scheduler, sample_item):
        outcome = drive_to_resolved(scheduler, sample_item.id)
        assert outcome.previous_status == ItemStatus.COMPLETE

    def test_complete_within_window_stays_complete(self, store, now):
        scheduler = Scheduler(store, config=SchedulerConfig(stabilization_window=timedelta(days=3650)))
        item = make_active(scheduler, now)
        drive_to_complete(scheduler, item.id)

        outcome = grade_when_due(scheduler, item.id, 5)

        assert outcome.item.status == ItemStatus.COMPLETE
        assert scheduler.pending_resolution(outcome.item.next_due) == []

    def test_failing_complete_item_falls_back_to_active(self, scheduler, sample_item):
        drive_to_complete(scheduler, sample_item.id)
        outcome = grade_when_due(scheduler, sample_item.id, 0)

        assert outcome.item.status == ItemStatus.ACTIVE
        assert outcome.item.completed_at is None

    def test_resolved_is_terminal(self, scheduler, sample_item):
        drive_to_resolved(scheduler, sample_item.id)
        outcome = grade_when_due(scheduler, sample_item.id, 0)
        assert outcome.item.status == ItemStatus.RESOLVED


class TestDependencies:
    def test_locked_item_never_offered(self, scheduler, now):
        base = make_active(scheduler, now, "base")
        advanced = make_active(scheduler, now - timedelta(days=1), "advanced")
        scheduler.add_edge(advanced.id, base.id)

        for hours in (0, 24, 24 * 30):
            chosen = scheduler.next_due_item(now + timedelta(hours=hours))
            assert chosen is None or chosen.id != advanced.id
        assert scheduler.next_due_item(now).id == base.id

    def test_only_locked_items_due_gives_none(self, scheduler, now):
        base = scheduler.create_item("base", now=now)
        advanced = make_active(scheduler, now, "advanced")
        scheduler.add_edge(advanced.id, base.id)

        assert scheduler.next_due_item(now) is None
        assert scheduler.due_count(now) == 0

    def test_resolving_dependency_unlocks(self, scheduler, now):
        base = make_active(scheduler, now, "base")
        advanced = make_active(scheduler, now, "advanced")
        scheduler.add_edge(advanced.id, base.id)
        assert not scheduler.is_unlocked(advanced.id)

        resolved = drive_to_resolved(scheduler, base.id)

        assert scheduler.is_unlocked(advanced.id)
        assert scheduler.next_due_item(resolved.record.timestamp).id == advanced.id

    def test_complete_item_waits_for_its_dependencies_to_resolve(self, scheduler, now):
        base = make_active(scheduler, now, "base")
        advanced = make_active(scheduler, now, "advanced")
        drive_to_complete(scheduler, advanced.id)
        scheduler.add_edge(advanced.id, base.id)

        outcome = scheduler.backfill_review(
            advanced.id, 5, scheduler.store.load_item(advanced.id).next_due
        )
        assert outcome.item.status == ItemStatus.COMPLETE

    def test_cycle_rejected_and_nothing_stored(self, scheduler, store, now):
        a = scheduler.create_item("a", now=now)
        b = scheduler.create_item("b", now=now)
        c = scheduler.create_item("c", now=now)
        scheduler.add_edge(b.id, a.id)
        scheduler.add_edge(c.id, b.id)

        with pytest.raises(CycleDetected):
            scheduler.add_edge(a.id, c.id)
        with pytest.raises(SelfDependency):
            scheduler.add_edge(a.id, a.id)

        assert len(store.load_edges()) == 2
        assert len(scheduler.graph) == 2

    def test_unknown_item_rejected(self, scheduler, now):
        a = scheduler.create_item("a", now=now)
        with pytest.raises(ItemNotFound):
            scheduler.add_edge(a.id, 99)

    def test_failed_edge_save_leaves_graph_unchanged(self, scheduler, store, now, monkeypatch):
        a = scheduler.create_item("a", now=now)
        b = scheduler.create_item("b", now=now)

        def broken_save(edge):
            raise StorageFailure("locked")

        monkeypatch.setattr(store, "save_edge", broken_save)
        with pytest.raises(StorageFailure):
            scheduler.add_edge(b.id, a.id)
        assert DependencyEdge(b.id, a.id) not in scheduler.graph

    def test_resolved_item_gaining_dependency_goes_back_to_complete(self, scheduler, store, now):
        a = make_active(scheduler, now, "a")
        b = make_active(scheduler, now, "b")
        c = make_active(scheduler, now, "c")
        resolved_b = drive_to_resolved(scheduler, b.id).item
        scheduler.add_edge(c.id, b.id)
        assert scheduler.is_unlocked(c.id)

        scheduler.add_edge(b.id, a.id)

        b_now = store.load_item(b.id)
        assert b_now.status == ItemStatus.COMPLETE
        assert b_now.completed_at == resolved_b.completed_at
        assert not scheduler.is_unlocked(b.id)
        assert not scheduler.is_unlocked(c.id)

    def test_demotion_cascades_to_resolved_dependents(self, scheduler, store, now):
        a = make_active(scheduler, now, "a")
        b = make_active(scheduler, now, "b")
        d = make_active(scheduler, now, "d")
        drive_to_resolved(scheduler, b.id)
        scheduler.add_edge(d.id, b.id)
        drive_to_resolved(scheduler, d.id)

        scheduler.add_edge(b.id, a.id)

        assert store.load_item(b.id).status == ItemStatus.COMPLETE
        assert store.load_item(d.id).status == ItemStatus.COMPLETE
        assert store.load_item(a.id).status == ItemStatus.ACTIVE

    def test_resolved_dependency_keeps_dependent_resolved(self, scheduler, store, now):
        a = make_active(scheduler, now, "a")
        b = make_active(scheduler, now, "b")
        drive_to_resolved(scheduler, a.id)
        drive_to_resolved(scheduler, b.id)

        scheduler.add_edge(b.id, a.id)

        assert store.load_item(b.id).status == ItemStatus.RESOLVED
        assert scheduler.is_unlocked(b.id)

    def test_failed_demotion_keeps_edge_out(self, scheduler, store, now, monkeypatch):
        a = make_active(scheduler, now, "a")
        b = make_active(scheduler, now, "b")
        drive_to_resolved(scheduler, b.id)

        def broken_save(item):
            raise StorageFailure("locked")

        monkeypatch.setattr(store, "save_item", broken_save)
        with pytest.raises(StorageFailure):
            scheduler.add_edge(b.id, a.id)

        assert store.load_edges() == []
        assert DependencyEdge(b.id, a.id) not in scheduler.graph
        assert store.load_item(b.id).status == ItemStatus.RESOLVED

    def test_remove_edge_unlocks(self, scheduler, store, now):
        base = scheduler.create_item("base", now=now)
        advanced = make_active(scheduler, now, "advanced")
        scheduler.add_edge(advanced.id, base.id)

        scheduler.remove_edge(advanced.id, base.id)
        scheduler.remove_edge(advanced.id, base.id)

        assert store.load_edges() == []
        assert scheduler.next_due_item(now).id == advanced.id

    def test_graph_rebuilt_from_store(self, scheduler, store, now):
        a = scheduler.create_item("a", now=now)
        b = scheduler.create_item("b", now=now)
        scheduler.add_edge(b.id, a.id)

        fresh = Scheduler(store)
        assert DependencyEdge(b.id, a.id) in fresh.graph


class TestSelectionOrder:
    def test_earliest_due_first(self, scheduler, now):
        make_active(scheduler, now, "late")
        early = make_active(scheduler, now - timedelta(hours=2), "early")
        assert scheduler.next_due_item(now).id == early.id

    def test_tie_broken_by_topic_position_then_id(self, scheduler, now):
        topics = TopicService(scheduler.store, scheduler.topics)
        first = topics.add_topic("First")
        second = topics.add_topic("Second")

        in_second = make_active(scheduler, now, "b", topic_id=second.id)
        no_topic = make_active(scheduler, now, "c")
        in_first = make_active(scheduler, now, "a", topic_id=first.id)
        in_first_too = make_active(scheduler, now, "d", topic_id=first.id)

        order = [i.id for i in scheduler.due_items(now)]
        assert order == [in_first.id, in_first_too.id, in_second.id, no_topic.id]
        assert scheduler.next_due_item(now).id == in_first.id

    def test_not_yet_due_ignored(self, scheduler, now):
        make_active(scheduler, now + timedelta(minutes=5))
        assert scheduler.next_due_item(now) is None


class TestSuspension:
    def test_skip_window_hides_item(self, scheduler, now, sample_item):
        scheduler.suspend(sample_item.id, timedelta(hours=2), now)

        assert scheduler.next_due_item(now + timedelta(hours=1)) is None
        with pytest.raises(ItemSuspended):
            scheduler.grade_review(sample_item.id, 4, now + timedelta(hours=1))

        assert scheduler.next_due_item(now + timedelta(hours=2)).id == sample_item.id

    def test_unsuspend_early(self, scheduler, now, sample_item):
        scheduler.suspend(sample_item.id, timedelta(days=5), now)
        scheduler.unsuspend(sample_item.id)
        assert scheduler.next_due_item(now).id == sample_item.id

    def test_indefinite_suspension(self, scheduler, now, sample_item):
        scheduler.set_suspended(sample_item.id, True)

        assert scheduler.next_due_item(now + timedelta(days=365)) is None
        with pytest.raises(ItemSuspended):
            scheduler.grade_review(sample_item.id, 4, now)

        scheduler.set_suspended(sample_item.id, False)
        assert scheduler.next_due_item(now).id == sample_item.id

    def test_non_positive_duration_rejected(self, scheduler, now, sample_item):
        with pytest.raises(ValueError):
            scheduler.suspend(sample_item.id, timedelta(0), now)
