"""
Builders for domain objects used across the test modules.
"""
import json
from datetime import date

from capacity_ledger.domain.assignment import Assignment
from capacity_ledger.domain.engineer import Engineer
from capacity_ledger.domain.project import Project


def d(text):
    return date.fromisoformat(text)


def make_engineer(engineer_id="e1", max_capacity=100, **kwargs):
    kwargs.setdefault("name", f"Engineer {engineer_id}")
    return Engineer(engineer_id=engineer_id, max_capacity=max_capacity, **kwargs)


def make_assignment(
    assignment_id="a1",
    engineer_id="e1",
    allocation=50,
    start="2024-01-01",
    end="2024-02-01",
    project_id="p1",
    role="Developer",
):
    return Assignment(
        assignment_id=assignment_id,
        engineer_id=engineer_id,
        project_id=project_id,
        allocation_percentage=allocation,
        start_date=d(start),
        end_date=d(end),
        role=role,
    )


def make_project(
    project_id="p1",
    name="Portal",
    start="2024-01-01",
    end="2024-07-01",
    status="active",
    required_skills=(),
    team_size=1,
):
    return Project(
        project_id=project_id,
        name=name,
        start_date=d(start),
        end_date=d(end),
        required_skills=list(required_skills),
        team_size=team_size,
        status=status,
    )


ENGINEERS = [
    {"_id": "e1", "name": "Alice Chen", "skills": ["react", "typescript"], "maxCapacity": 100},
    {"_id": "e2", "name": "Bilal Okafor", "skills": ["python"], "maxCapacity": 100},
    {"_id": "e3", "name": "Carmen Ruiz", "skills": ["python", "go"], "maxCapacity": 50},
    {"_id": "m1", "name": "Morgan Lee", "role": "manager"},
]

PROJECTS = [
    {"_id": "p1", "name": "Customer Portal", "startDate": "2024-01-01", "endDate": "2024-07-01",
     "requiredSkills": ["react"], "teamSize": 2, "status": "active"},
    {"_id": "p2", "name": "Billing API", "startDate": "2024-08-01", "endDate": "2024-12-01",
     "requiredSkills": ["Python", "go"], "teamSize": 2, "status": "planning"},
    {"_id": "p3", "name": "Legacy Sunset", "startDate": "2023-01-01", "endDate": "2023-06-01",
     "status": "completed"},
]

ASSIGNMENTS = [
    {"_id": "a1", "engineerId": "e1", "projectId": "p1", "allocationPercentage": 60,
     "startDate": "2024-01-01", "endDate": "2024-07-01", "role": "Tech Lead"},
    {"_id": "a2", "engineerId": "e3", "projectId": "p1", "allocationPercentage": 30,
     "startDate": "2024-01-01", "endDate": "2024-07-01", "role": "Developer"},
]


def write_instance(path, engineers=ENGINEERS, projects=PROJECTS, assignments=ASSIGNMENTS, settings=None):
    path.mkdir(parents=True, exist_ok=True)
    (path / "engineers.json").write_text(json.dumps({"engineers": engineers}), encoding="utf-8")
    (path / "projects.json").write_text(json.dumps({"projects": projects}), encoding="utf-8")
    (path / "assignments.json").write_text(json.dumps({"assignments": assignments}), encoding="utf-8")
    if settings is not None:
        (path / "settings.json").write_text(json.dumps(settings), encoding="utf-8")
    return path
