"""Tests for the execution state tracker."""
import pytest
from conftest import build_workflow

from wf_core.errors import InvalidTransition, WorkflowError
from wf_core.orchestrator.tracker import ExecutionTracker, NodeStatus, RunStatus


def run_through(tracker, node_id, result=None, outcome=None):
    tracker.begin_node(node_id)
    return tracker.complete_node(node_id, result=result, outcome=outcome)


class TestRunLifecycle:
    def test_initial_state(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        assert tracker.status == RunStatus.PENDING
        assert tracker.record.workflow_id == "wf_test"
        assert set(tracker.record.node_results) == {"start", "ask", "done"}
        assert all(s.status == NodeStatus.PENDING for s in tracker.record.node_results.values())

    def test_start(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        record = tracker.start()
        assert record.status == RunStatus.RUNNING
        assert record.started_at is not None
        assert record.events[0].kind == "run"
        assert (record.events[0].from_status, record.events[0].to_status) == ("pending", "running")

    def test_start_twice_rejected(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        with pytest.raises(InvalidTransition):
            tracker.start()

    def test_linear_run_completes(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        for node_id in ["start", "ask", "done"]:
            assert tracker.eligible_nodes() == [node_id]
            run_through(tracker, node_id, result=f"{node_id} ok")
        record = tracker.record
        assert record.status == RunStatus.COMPLETED
        assert record.visited_nodes == ["start", "ask", "done"]
        assert record.final_result == "done ok"
        assert record.finished_at is not None
        assert record.current_node_id is None

    def test_begin_starts_pending_run(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.begin_node("start")
        assert tracker.status == RunStatus.RUNNING
        assert tracker.record.current_node_id == "start"

    def test_rejected_begin_leaves_run_pending(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        with pytest.raises(InvalidTransition):
            tracker.begin_node("done")
        assert tracker.status == RunStatus.PENDING
        assert tracker.record.started_at is None
        assert tracker.record.events == []
        assert tracker.start().status == RunStatus.RUNNING

    def test_empty_workflow_completes_on_start(self):
        tracker = ExecutionTracker(build_workflow(nodes=[]))
        assert tracker.start().status == RunStatus.COMPLETED
        assert tracker.record.final_result is None

    def test_cycle_only_workflow_completes_on_start(self):
        wf = build_workflow(
            nodes=[("a", "action", None), ("b", "action", None)],
            edges=[("a", "b", None), ("b", "a", None)],
        )
        tracker = ExecutionTracker(wf)
        tracker.start()
        assert tracker.status == RunStatus.COMPLETED
        assert tracker.record.visited_nodes == []


class TestNodeTransitions:
    def test_one_node_at_a_time(self):
        wf = build_workflow(nodes=[("a", "trigger", None), ("b", "trigger", None)])
        tracker = ExecutionTracker(wf)
        tracker.start()
        assert tracker.eligible_nodes() == ["a", "b"]
        tracker.begin_node("a")
        assert tracker.eligible_nodes() == []
        assert tracker.running_node() == "a"
        with pytest.raises(InvalidTransition):
            tracker.begin_node("b")

    def test_successor_not_eligible_early(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        with pytest.raises(InvalidTransition, match="not eligible"):
            tracker.begin_node("ask")

    def test_unknown_node(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        with pytest.raises(InvalidTransition, match="not found"):
            tracker.begin_node("ghost")

    def test_complete_requires_running(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        with pytest.raises(InvalidTransition):
            tracker.complete_node("start")

    def test_no_restart_after_completion(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        run_through(tracker, "start")
        with pytest.raises(InvalidTransition):
            tracker.begin_node("start")

    def test_invalid_transition_is_workflow_error(self):
        assert issubclass(InvalidTransition, WorkflowError)

    def test_node_events_recorded(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        run_through(tracker, "start")
        node_events = [(e.node_id, e.to_status) for e in tracker.record.events if e.kind == "node"]
        assert node_events == [("start", "running"), ("start", "completed")]


class TestDecisions:
    def test_outcome_required(self, branching_workflow):
        tracker = ExecutionTracker(branching_workflow)
        tracker.start()
        run_through(tracker, "start")
        tracker.begin_node("check")
        with pytest.raises(InvalidTransition, match="outcome"):
            tracker.complete_node("check")
        assert tracker.running_node() == "check"

    def test_true_branch(self, branching_workflow):
        tracker = ExecutionTracker(branching_workflow)
        tracker.start()
        run_through(tracker, "start")
        run_through(tracker, "check", outcome=True)
        assert tracker.record.node_results["check"].selected_handle == "true"
        assert tracker.eligible_nodes() == ["yes"]
        run_through(tracker, "yes")
        assert tracker.eligible_nodes() == ["out"]
        run_through(tracker, "out")
        assert tracker.status == RunStatus.COMPLETED
        assert tracker.record.node_results["no"].status == NodeStatus.PENDING
        assert "no" not in tracker.record.visited_nodes

    def test_false_branch(self, branching_workflow):
        tracker = ExecutionTracker(branching_workflow)
        tracker.start()
        run_through(tracker, "start")
        run_through(tracker, "check", outcome=False)
        assert tracker.eligible_nodes() == ["no"]
        with pytest.raises(InvalidTransition):
            tracker.begin_node("yes")
        run_through(tracker, "no")
        run_through(tracker, "out", result="done")
        assert tracker.record.visited_nodes == ["start", "check", "no", "out"]
        assert tracker.record.final_result == "done"


class TestLoops:
    def _loop_workflow(self, count):
        return build_workflow(
            nodes=[
                ("t", "trigger", None),
                ("l", "loop", {"label": "Again", "loopCount": count}),
                ("o", "output", None),
            ],
            edges=[("t", "l", None), ("l", "o", None)],
        )

    def test_loop_repeats(self):
        tracker = ExecutionTracker(self._loop_workflow(3))
        tracker.start()
        run_through(tracker, "t")
        for i in range(1, 3):
            run_through(tracker, "l")
            slot = tracker.record.node_results["l"]
            assert slot.iterations == i
            assert slot.status == NodeStatus.PENDING
            assert tracker.eligible_nodes() == ["l"]
        run_through(tracker, "l")
        assert tracker.record.node_results["l"].status == NodeStatus.COMPLETED
        assert tracker.record.node_results["l"].iterations == 3
        assert tracker.eligible_nodes() == ["o"]
        assert tracker.record.visited_nodes == ["t", "l"]

    def test_unfinished_loop_offered_first(self):
        # Order is t, u, l, x: the loop sits behind an unrelated root
        wf = build_workflow(
            nodes=[
                ("t", "trigger", None),
                ("l", "loop", {"label": "Again", "loopCount": 2}),
                ("u", "trigger", None),
                ("x", "action", None),
            ],
            edges=[("t", "l", None), ("u", "x", None)],
        )
        tracker = ExecutionTracker(wf)
        tracker.start()
        run_through(tracker, "t")
        assert tracker.eligible_nodes() == ["u", "l"]
        run_through(tracker, "l")
        assert tracker.eligible_nodes() == ["l", "u"]
        run_through(tracker, "l")
        assert tracker.record.node_results["l"].status == NodeStatus.COMPLETED
        assert tracker.eligible_nodes() == ["u"]

    def test_single_iteration(self):
        tracker = ExecutionTracker(self._loop_workflow(1))
        tracker.start()
        run_through(tracker, "t")
        run_through(tracker, "l")
        assert tracker.record.node_results["l"].status == NodeStatus.COMPLETED


class TestFailureAndCancel:
    def test_fail_node_fails_run(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        run_through(tracker, "start")
        tracker.begin_node("ask")
        tracker.fail_node("ask", "model unavailable")
        record = tracker.record
        assert record.status == RunStatus.FAILED
        assert record.error == "Node 'ask' failed: model unavailable"
        assert record.node_results["ask"].error == "model unavailable"
        assert tracker.eligible_nodes() == []
        with pytest.raises(InvalidTransition):
            tracker.begin_node("done")

    def test_cancel(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        tracker.cancel("user stop")
        assert tracker.status == RunStatus.CANCELLED
        assert tracker.record.events[-1].detail == "user stop"
        assert tracker.eligible_nodes() == []
        with pytest.raises(InvalidTransition):
            tracker.cancel()

    def test_cancel_lets_running_node_finish(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        tracker.begin_node("start")
        tracker.cancel()
        tracker.complete_node("start", result="late")
        assert tracker.record.node_results["start"].status == NodeStatus.COMPLETED
        assert tracker.status == RunStatus.CANCELLED

    def test_cancel_completed_run_rejected(self):
        tracker = ExecutionTracker(build_workflow(nodes=[]))
        tracker.start()
        with pytest.raises(InvalidTransition):
            tracker.cancel()


class TestObservability:
    def test_progress(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        run_through(tracker, "start")
        tracker.begin_node("ask")
        progress = tracker.progress()
        assert progress["status"] == "running"
        assert progress["current_node_id"] == "ask"
        assert progress["visited"] == 2
        assert progress["total"] == 3
        assert progress["nodes"] == {"pending": 1, "running": 1, "completed": 1, "failed": 0}

    def test_snapshot_is_detached(self, linear_workflow):
        tracker = ExecutionTracker(linear_workflow)
        tracker.start()
        snap = tracker.snapshot()
        run_through(tracker, "start")
        assert snap.visited_nodes == []
        assert snap.node_results["start"].status == NodeStatus.PENDING
