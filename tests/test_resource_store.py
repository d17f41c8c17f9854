import json
import threading

import pytest

from capacity_ledger.errors import (
    InvalidAssignmentError,
    InvalidProjectError,
    OverAllocationError,
    UnknownReferenceError,
)
from capacity_ledger.ledger.admission import AllocationPolicy
from capacity_ledger.store.poller import CapacityPoller
from capacity_ledger.store.resource_store import ResourceStore

from helpers import write_instance


def request(**overrides):
    payload = {
        "engineerId": "e2",
        "projectId": "p1",
        "allocationPercentage": 50,
        "startDate": "2024-01-01",
        "endDate": "2024-07-01",
        "role": "Developer",
    }
    payload.update(overrides)
    return payload


def stored_ids(instance_dir):
    obj = json.loads((instance_dir / "assignments.json").read_text(encoding="utf-8"))
    return [a["_id"] for a in obj["assignments"]]


def stored_projects(instance_dir):
    obj = json.loads((instance_dir / "projects.json").read_text(encoding="utf-8"))
    return {p["_id"]: p for p in obj["projects"]}


class TestSnapshot:
    def test_snapshot_contents(self, store):
        snap = store.snapshot()
        assert [e.engineer_id for e in snap.engineers] == ["e1", "e2", "e3", "m1"]
        assert len(snap.projects) == 3
        assert len(snap.assignments) == 2

    def test_lookup_unknown(self, store):
        with pytest.raises(UnknownReferenceError):
            store.snapshot().engineer("ghost")

    def test_capacity(self, store):
        capacity = store.capacity()
        assert capacity["e1"].available_capacity == 40
        assert capacity["e3"].available_capacity == 20
        assert capacity["e2"].allocated_capacity == 0

    def test_settings_read_from_instance(self, tmp_path):
        inst = write_instance(tmp_path / "inst", settings={"allocation_policy": "overlapping"})
        assert ResourceStore.from_instance_dir(inst).settings.allocation_policy is AllocationPolicy.OVERLAPPING


class TestCreateAssignment:
    def test_create_persists_and_invalidates(self, store, instance_dir):
        store.snapshot()
        created = store.create_assignment(request())
        assert created.engineer_name == "Bilal Okafor"
        assert created.project_name == "Customer Portal"
        assert created.assignment_id in stored_ids(instance_dir)
        assert store.capacity()["e2"].allocated_capacity == 50

    def test_over_allocation_rejected(self, store, instance_dir):
        with pytest.raises(OverAllocationError) as excinfo:
            store.create_assignment(request(engineerId="e1", allocationPercentage=50))
        assert excinfo.value.decision.current_allocated == 60
        assert stored_ids(instance_dir) == ["a1", "a2"]

    def test_part_time_limit(self, store):
        with pytest.raises(OverAllocationError):
            store.create_assignment(request(engineerId="e3", allocationPercentage=21))
        store.create_assignment(request(engineerId="e3", allocationPercentage=20))

    def test_sequential_depends_on_policy(self, store, overlapping_store):
        later = request(engineerId="e1", projectId="p2", allocationPercentage=80,
                        startDate="2024-08-01", endDate="2024-12-01")
        with pytest.raises(OverAllocationError):
            store.create_assignment(later)
        created = overlapping_store.create_assignment(later)
        assert created.project_id == "p2"

    def test_invalid_request(self, store):
        with pytest.raises(InvalidAssignmentError):
            store.create_assignment(request(allocationPercentage=0))

    def test_unknown_engineer(self, store):
        with pytest.raises(UnknownReferenceError):
            store.create_assignment(request(engineerId="ghost"))

    def test_completed_project_rejected(self, store):
        with pytest.raises(InvalidAssignmentError, match="completed"):
            store.create_assignment(request(projectId="p3"))

    def test_sees_writes_made_outside_the_store(self, store, instance_dir):
        store.snapshot()
        obj = json.loads((instance_dir / "assignments.json").read_text(encoding="utf-8"))
        obj["assignments"].append({
            "_id": "ext", "engineerId": "e2", "projectId": "p1", "allocationPercentage": 90,
            "startDate": "2024-01-01", "endDate": "2024-07-01", "role": "Developer",
        })
        (instance_dir / "assignments.json").write_text(json.dumps(obj), encoding="utf-8")

        with pytest.raises(OverAllocationError):
            store.create_assignment(request(engineerId="e2", allocationPercentage=20))

    def test_check_does_not_persist(self, store, instance_dir):
        decision = store.check(request())
        assert decision.admissible
        assert stored_ids(instance_dir) == ["a1", "a2"]


class TestUpdateAndDelete:
    def test_update_excludes_itself(self, store):
        updated = store.update_assignment("a1", {"allocationPercentage": 100})
        assert updated.allocation_percentage == 100
        assert store.capacity()["e1"].allocated_capacity == 100

    def test_update_over_allocation(self, store):
        with pytest.raises(OverAllocationError):
            store.update_assignment("a2", {"allocationPercentage": 60})

    def test_update_unknown(self, store):
        with pytest.raises(UnknownReferenceError):
            store.update_assignment("nope", {"allocationPercentage": 10})

    def test_delete(self, store, instance_dir):
        store.delete_assignment("a1")
        assert stored_ids(instance_dir) == ["a2"]
        assert store.capacity()["e1"].allocated_capacity == 0

    def test_delete_unknown(self, store):
        with pytest.raises(UnknownReferenceError):
            store.delete_assignment("nope")


class TestProjects:
    def project_payload(self, **overrides):
        payload = {
            "name": "Data Platform",
            "startDate": "2024-03-01",
            "endDate": "2024-09-01",
            "teamSize": 2,
            "requiredSkills": ["Python", "python", "SQL"],
            "managerId": "m1",
        }
        payload.update(overrides)
        return payload

    def test_create_persists_and_invalidates(self, store, instance_dir):
        store.snapshot()
        created = store.create_project(self.project_payload())
        assert created.status == "planning"
        assert created.required_skills == ["python", "sql"]
        assert stored_projects(instance_dir)[created.project_id]["managerId"] == "m1"
        assert store.snapshot().project(created.project_id).name == "Data Platform"

    def test_new_project_accepts_assignments(self, store):
        created = store.create_project(self.project_payload())
        payload = request(projectId=created.project_id, startDate="2024-03-01", endDate="2024-09-01")
        assignment = store.create_assignment(payload)
        assert assignment.project_name == "Data Platform"

    def test_create_invalid(self, store, instance_dir):
        with pytest.raises(InvalidProjectError):
            store.create_project(self.project_payload(teamSize=0))
        assert sorted(stored_projects(instance_dir)) == ["p1", "p2", "p3"]

    def test_update(self, store, instance_dir):
        store.snapshot()
        updated = store.update_project("p2", {"teamSize": 4, "requiredSkills": ["Rust"]})
        assert updated.team_size == 4
        assert updated.required_skills == ["rust"]
        assert updated.name == "Billing API"
        assert stored_projects(instance_dir)["p2"]["teamSize"] == 4
        assert store.snapshot().project("p2").team_size == 4

    def test_completing_a_project_blocks_assignments(self, store):
        store.update_project("p1", {"status": "completed"})
        with pytest.raises(InvalidAssignmentError, match="completed"):
            store.create_assignment(request())

    def test_update_invalid(self, store, instance_dir):
        with pytest.raises(InvalidProjectError):
            store.update_project("p1", {"endDate": "2023-12-01"})
        assert stored_projects(instance_dir)["p1"]["endDate"] == "2024-07-01"

    def test_update_unknown(self, store):
        with pytest.raises(UnknownReferenceError):
            store.update_project("ghost", {"teamSize": 2})

    def test_listeners_notified(self, store):
        events = []
        store.subscribe(lambda event, capacity: events.append(event))
        created = store.create_project(self.project_payload())
        store.update_project(created.project_id, {"status": "active"})
        assert events == ["project_created", "project_updated"]


class TestSubscriptions:
    def test_listener_gets_fresh_capacity(self, store):
        events = []
        store.subscribe(lambda event, capacity: events.append((event, capacity["e1"].allocated_capacity)))
        store.delete_assignment("a1")
        assert events == [("deleted", 0)]

    def test_unsubscribe(self, store):
        events = []
        unsubscribe = store.subscribe(lambda event, capacity: events.append(event))
        unsubscribe()
        store.delete_assignment("a1")
        assert events == []

    def test_failing_listener_does_not_block_others(self, store, caplog):
        events = []

        def broken(event, capacity):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.subscribe(lambda event, capacity: events.append(event))
        store.create_assignment(request())
        assert events == ["created"]
        assert "Capacity listener failed" in caplog.text


class TestPoller:
    def test_tick_notifies_only_on_change(self, store, instance_dir):
        events = []
        store.subscribe(lambda event, capacity: events.append(event))
        poller = CapacityPoller(store, interval_seconds=60)

        assert poller.tick() is True
        assert poller.tick() is False

        obj = json.loads((instance_dir / "assignments.json").read_text(encoding="utf-8"))
        obj["assignments"] = obj["assignments"][:1]
        (instance_dir / "assignments.json").write_text(json.dumps(obj), encoding="utf-8")

        assert poller.tick() is True
        assert events == ["poll", "poll"]

    def test_interval_defaults_to_settings(self, store):
        assert CapacityPoller(store).interval_seconds == store.settings.refresh_interval_seconds

    def test_rejects_non_positive_interval(self, store):
        with pytest.raises(ValueError):
            CapacityPoller(store, interval_seconds=0)

    def test_start_stop(self, store):
        poller = CapacityPoller(store, interval_seconds=0.01)
        with poller:
            assert poller.running
        assert not poller.running

    def test_loop_survives_unexpected_errors(self, store, caplog):
        calls = []
        original = store.refresh

        def flaky(key):
            calls.append(key)
            if len(calls) == 1:
                raise RuntimeError("backend down")
            original(key)

        store.refresh = flaky
        notified = threading.Event()
        store.subscribe(lambda event, capacity: notified.set())

        with CapacityPoller(store, interval_seconds=0.01):
            assert notified.wait(5.0)
        assert len(calls) >= 2
        assert "Capacity refresh failed" in caplog.text
