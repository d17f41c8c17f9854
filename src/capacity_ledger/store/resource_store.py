"""
Resource store - snapshot reads and assignment mutations.

Responsibilities:
- Serve consistent snapshots of engineers, projects and assignments
- Gate new assignments through request validation and capacity admission
- Validate and persist project creates and edits
- Invalidate cached assignments after every mutation
- Notify subscribers with the recomputed capacity map
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.capacity import CapacityRecord
from capacity_ledger.domain.engineer import Engineer
from capacity_ledger.domain.project import Project
from capacity_ledger.errors import InvalidAssignmentError, OverAllocationError, UnknownReferenceError
from capacity_ledger.ledger.admission import AdmissionDecision, check_assignment, make_proposal
from capacity_ledger.ledger.capacity import compute_all_capacity
from capacity_ledger.preprocessing.loaders import (
    ASSIGNMENTS_FILE,
    ENGINEERS_FILE,
    PROJECTS_FILE,
    SETTINGS_FILE,
    LedgerSettings,
    assignment_to_record,
    load_assignments,
    load_engineers,
    load_projects,
    load_settings,
    project_to_record,
    save_assignments,
    save_projects,
)
from capacity_ledger.preprocessing.validate_inputs import (
    AssignmentRequest,
    FieldError,
    ProjectRequest,
    parse_assignment_request,
    parse_project_request,
)
from capacity_ledger.store.snapshot_cache import SnapshotCache

logger = logging.getLogger(__name__)

CapacityListener = Callable[[str, Dict[str, CapacityRecord]], None]


@dataclass(frozen=True)
class Snapshot:
    engineers: Tuple[Engineer, ...]
    projects: Tuple[Project, ...]
    assignments: Tuple[Assignment, ...]

    def engineer(self, engineer_id: str) -> Engineer:
        for e in self.engineers:
            if e.engineer_id == engineer_id:
                return e
        raise UnknownReferenceError("engineer", engineer_id)

    def project(self, project_id: str) -> Project:
        for p in self.projects:
            if p.project_id == project_id:
                return p
        raise UnknownReferenceError("project", project_id)


class JsonDirectorySource:
    """
    Instance directory holding engineers.json, projects.json and assignments.json.

    Stands in for the remote API: reads every file on demand and rewrites
    projects.json or assignments.json on mutation.
    """

    def __init__(self, instance_dir: Path, default_max_capacity: int = 100):
        self.instance_dir = Path(instance_dir)
        self.default_max_capacity = default_max_capacity
        self._write_lock = threading.Lock()

    def load_engineers(self) -> List[Engineer]:
        return load_engineers(self.instance_dir / ENGINEERS_FILE, self.default_max_capacity)

    def load_projects(self) -> List[Project]:
        return load_projects(self.instance_dir / PROJECTS_FILE)

    def load_assignments(self) -> List[Assignment]:
        return load_assignments(self.instance_dir / ASSIGNMENTS_FILE)

    def new_project_id(self) -> str:
        return uuid.uuid4().hex

    def new_assignment_id(self) -> str:
        return uuid.uuid4().hex

    def add_project(self, project: Project) -> None:
        with self._write_lock:
            current = self.load_projects()
            current.append(project)
            save_projects(self.instance_dir / PROJECTS_FILE, current)

    def replace_project(self, project: Project) -> bool:
        with self._write_lock:
            current = self.load_projects()
            if not any(p.project_id == project.project_id for p in current):
                return False
            updated = [project if p.project_id == project.project_id else p for p in current]
            save_projects(self.instance_dir / PROJECTS_FILE, updated)
            return True

    def add_assignment(self, assignment: Assignment) -> None:
        with self._write_lock:
            current = self.load_assignments()
            current.append(assignment)
            save_assignments(self.instance_dir / ASSIGNMENTS_FILE, current)

    def replace_assignment(self, assignment: Assignment) -> bool:
        with self._write_lock:
            current = self.load_assignments()
            if not any(a.assignment_id == assignment.assignment_id for a in current):
                return False
            updated = [assignment if a.assignment_id == assignment.assignment_id else a for a in current]
            save_assignments(self.instance_dir / ASSIGNMENTS_FILE, updated)
            return True

    def delete_assignment(self, assignment_id: str) -> bool:
        with self._write_lock:
            current = self.load_assignments()
            remaining = [a for a in current if a.assignment_id != assignment_id]
            if len(remaining) == len(current):
                return False
            save_assignments(self.instance_dir / ASSIGNMENTS_FILE, remaining)
            return True


class ResourceStore:
    """
    Snapshot-based access to the resource lists, with admission-checked writes.
    """

    def __init__(self, source: Any, settings: Optional[LedgerSettings] = None):
        self.source = source
        self.settings = settings or LedgerSettings()
        self.cache = SnapshotCache(
            {
                "engineers": source.load_engineers,
                "projects": source.load_projects,
                "assignments": source.load_assignments,
            },
            ttl_seconds=self.settings.staleness_seconds,
        )
        self._lock = threading.RLock()
        self._listeners: List[CapacityListener] = []

    @classmethod
    def from_instance_dir(cls, instance_dir: Path, settings: Optional[LedgerSettings] = None) -> "ResourceStore":
        instance_dir = Path(instance_dir)
        if settings is None:
            settings = load_settings(instance_dir / SETTINGS_FILE)
        source = JsonDirectorySource(instance_dir, settings.default_max_capacity)
        return cls(source, settings)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> Snapshot:
        with self._lock:
            return Snapshot(
                engineers=tuple(self.cache.get("engineers")),
                projects=tuple(self.cache.get("projects")),
                assignments=tuple(self.cache.get("assignments")),
            )

    def refresh(self, key: str) -> None:
        with self._lock:
            self.cache.refresh(key)

    def capacity(self, snapshot: Optional[Snapshot] = None) -> Dict[str, CapacityRecord]:
        snap = snapshot or self.snapshot()
        return compute_all_capacity(snap.engineers, snap.assignments)

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def _admit(
        self,
        snap: Snapshot,
        request: AssignmentRequest,
        exclude_id: Optional[str] = None,
    ) -> Tuple[Engineer, Project, AdmissionDecision]:
        engineer = snap.engineer(request.engineer_id)
        project = snap.project(request.project_id)
        if not project.accepts_assignments:
            raise InvalidAssignmentError(
                [FieldError("projectId", f"Project {project.name} is completed")]
            )

        others = [a for a in snap.assignments if a.assignment_id != exclude_id]
        proposal = make_proposal(
            request.engineer_id,
            request.allocation_percentage,
            request.start_date,
            request.end_date,
        )
        decision = check_assignment(engineer, others, proposal, self.settings.allocation_policy)
        return engineer, project, decision

    def check(self, payload: Dict[str, Any]) -> AdmissionDecision:
        """
        Run validation and admission for a request without persisting it.
        """
        request = parse_assignment_request(payload)
        with self._lock:
            self.cache.refresh("assignments")
            _, _, decision = self._admit(self.snapshot(), request)
        return decision

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_assignment(self, payload: Dict[str, Any]) -> Assignment:
        request = parse_assignment_request(payload)

        with self._lock:
            self.cache.refresh("assignments")
            snap = self.snapshot()
            engineer, project, decision = self._admit(snap, request)
            if not decision.admissible:
                logger.info(
                    "Rejected assignment of %s to %s: %s",
                    engineer.engineer_id,
                    project.project_id,
                    decision,
                )
                raise OverAllocationError(decision)

            assignment = Assignment(
                assignment_id=self.source.new_assignment_id(),
                engineer_id=engineer.engineer_id,
                project_id=project.project_id,
                allocation_percentage=request.allocation_percentage,
                start_date=request.start_date,
                end_date=request.end_date,
                role=request.role,
                engineer_name=engineer.name or None,
                project_name=project.name or None,
            )
            self.source.add_assignment(assignment)
            self.cache.invalidate("assignments")
            logger.info("Created assignment %s", assignment.assignment_id)

        self.notify("created")
        return assignment

    def update_assignment(self, assignment_id: str, changes: Dict[str, Any]) -> Assignment:
        with self._lock:
            self.cache.refresh("assignments")
            snap = self.snapshot()
            existing = next((a for a in snap.assignments if a.assignment_id == assignment_id), None)
            if existing is None:
                raise UnknownReferenceError("assignment", assignment_id)

            payload = assignment_to_record(existing)
            payload.update(changes)
            request = parse_assignment_request(payload)
            engineer, project, decision = self._admit(snap, request, exclude_id=assignment_id)
            if not decision.admissible:
                raise OverAllocationError(decision)

            updated = replace(
                existing,
                engineer_id=request.engineer_id,
                project_id=request.project_id,
                allocation_percentage=request.allocation_percentage,
                start_date=request.start_date,
                end_date=request.end_date,
                role=request.role,
                engineer_name=engineer.name or None,
                project_name=project.name or None,
            )
            if not self.source.replace_assignment(updated):
                raise UnknownReferenceError("assignment", assignment_id)
            self.cache.invalidate("assignments")
            logger.info("Updated assignment %s", assignment_id)

        self.notify("updated")
        return updated

    def delete_assignment(self, assignment_id: str) -> None:
        with self._lock:
            if not self.source.delete_assignment(assignment_id):
                raise UnknownReferenceError("assignment", assignment_id)
            self.cache.invalidate("assignments")
            logger.info("Deleted assignment %s", assignment_id)

        self.notify("deleted")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    @staticmethod
    def _build_project(project_id: str, request: ProjectRequest) -> Project:
        return Project(
            project_id=project_id,
            name=request.name,
            start_date=request.start_date,
            end_date=request.end_date,
            description=request.description,
            required_skills=request.required_skills,
            team_size=request.team_size,
            status=request.status,
            manager_id=request.manager_id,
        )

    def create_project(self, payload: Dict[str, Any]) -> Project:
        request = parse_project_request(payload)

        with self._lock:
            project = self._build_project(self.source.new_project_id(), request)
            self.source.add_project(project)
            self.cache.invalidate("projects")
            logger.info("Created project %s", project.project_id)

        self.notify("project_created")
        return project

    def update_project(self, project_id: str, changes: Dict[str, Any]) -> Project:
        """
        Apply changes on top of the stored project and re-validate the result.
        """
        with self._lock:
            self.cache.refresh("projects")
            existing = self.snapshot().project(project_id)

            payload = project_to_record(existing)
            payload.update(changes)
            updated = self._build_project(project_id, parse_project_request(payload))
            if not self.source.replace_project(updated):
                raise UnknownReferenceError("project", project_id)
            self.cache.invalidate("projects")
            logger.info("Updated project %s", project_id)

        self.notify("project_updated")
        return updated

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: CapacityListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: str, capacity: Optional[Dict[str, CapacityRecord]] = None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        if not listeners:
            return

        if capacity is None:
            capacity = self.capacity()
        for listener in listeners:
            try:
                listener(event, capacity)
            except Exception:
                logger.exception("Capacity listener failed on %s event", event)
