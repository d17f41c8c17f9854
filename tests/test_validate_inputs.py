import pytest

from capacity_ledger.errors import InvalidAssignmentError, InvalidProjectError
from capacity_ledger.preprocessing.validate_inputs import (
    normalize_skills,
    parse_assignment_request,
    parse_project_request,
    validate_assignment_request,
    validate_assignments,
    validate_engineers,
    validate_project_request,
    validate_projects,
)

from helpers import d, make_assignment, make_engineer, make_project


def request(**overrides):
    payload = {
        "engineerId": "e1",
        "projectId": "p1",
        "allocationPercentage": 30,
        "startDate": "2024-01-01",
        "endDate": "2024-03-01",
        "role": "Developer",
    }
    payload.update(overrides)
    return payload


def messages(errors):
    return {e.field: e.message for e in errors}


class TestValidateAssignmentRequest:
    def test_valid(self):
        assert validate_assignment_request(request()) == []

    def test_missing_fields(self):
        errors = messages(validate_assignment_request({}))
        assert errors["engineerId"] == "Engineer is required"
        assert errors["projectId"] == "Project is required"
        assert errors["allocationPercentage"] == "Allocation must be a number"
        assert errors["startDate"] == "Start date is required"
        assert errors["endDate"] == "End date is required"
        assert errors["role"] == "Role is required"

    @pytest.mark.parametrize("value,message", [
        (0, "Allocation must be at least 1%"),
        (101, "Allocation cannot exceed 100%"),
        (12.5, "Allocation must be a whole number"),
        ("30", "Allocation must be a number"),
        (True, "Allocation must be a number"),
        (float("nan"), "Allocation must be a number"),
        (float("inf"), "Allocation must be a number"),
        (float("-inf"), "Allocation must be a number"),
    ])
    def test_allocation_range(self, value, message):
        errors = messages(validate_assignment_request(request(allocationPercentage=value)))
        assert errors == {"allocationPercentage": message}

    def test_bounds_inclusive(self):
        assert validate_assignment_request(request(allocationPercentage=1)) == []
        assert validate_assignment_request(request(allocationPercentage=100)) == []

    def test_end_must_follow_start(self):
        errors = messages(validate_assignment_request(request(startDate="2024-01-10", endDate="2024-01-05")))
        assert errors == {"endDate": "End date must be after start date"}

    def test_equal_dates(self):
        errors = messages(validate_assignment_request(request(startDate="2024-01-10", endDate="2024-01-10")))
        assert "endDate" in errors

    def test_unparseable_date(self):
        errors = messages(validate_assignment_request(request(startDate="someday")))
        assert errors == {"startDate": "Invalid start date"}

    def test_blank_role(self):
        assert messages(validate_assignment_request(request(role="   "))) == {"role": "Role is required"}


class TestParseAssignmentRequest:
    def test_parsed_values(self):
        parsed = parse_assignment_request(request(allocationPercentage=30.0, role=" Lead "))
        assert parsed.allocation_percentage == 30
        assert parsed.start_date == d("2024-01-01")
        assert parsed.role == "Lead"

    def test_raises_with_errors(self):
        with pytest.raises(InvalidAssignmentError) as excinfo:
            parse_assignment_request(request(allocationPercentage=0))
        assert excinfo.value.errors[0].field == "allocationPercentage"
        assert isinstance(excinfo.value, ValueError)

    def test_nan_allocation_raises_field_error(self):
        with pytest.raises(InvalidAssignmentError) as excinfo:
            parse_assignment_request(request(allocationPercentage=float("nan")))
        assert [e.message for e in excinfo.value.errors] == ["Allocation must be a number"]


def project_request(**overrides):
    payload = {
        "name": "Data Platform",
        "description": "Warehouse migration",
        "startDate": "2024-03-01",
        "endDate": "2024-09-01",
        "status": "planning",
        "teamSize": 3,
        "requiredSkills": ["Python", "SQL"],
    }
    payload.update(overrides)
    return payload


class TestValidateProjectRequest:
    def test_valid(self):
        assert validate_project_request(project_request()) == []

    def test_missing_fields(self):
        errors = messages(validate_project_request({}))
        assert errors == {
            "name": "Project name is required",
            "startDate": "Start date is required",
            "endDate": "End date is required",
            "teamSize": "Team size is required",
        }

    def test_end_must_follow_start(self):
        errors = messages(validate_project_request(project_request(endDate="2024-03-01")))
        assert errors == {"endDate": "End date must be after start date"}

    @pytest.mark.parametrize("value,message", [
        (0, "Team size must be at least 1"),
        (2.5, "Team size must be a whole number"),
        ("3", "Team size must be a number"),
        (float("nan"), "Team size must be a number"),
    ])
    def test_team_size(self, value, message):
        errors = messages(validate_project_request(project_request(teamSize=value)))
        assert errors == {"teamSize": message}

    def test_unknown_status(self):
        errors = messages(validate_project_request(project_request(status="archived")))
        assert errors == {"status": "Status must be one of planning, active, completed"}

    def test_non_text_skills(self):
        errors = messages(validate_project_request(project_request(requiredSkills=["python", 3])))
        assert errors == {"requiredSkills": "Skills must be a list of text"}


class TestParseProjectRequest:
    def test_skills_normalised(self):
        parsed = parse_project_request(project_request(requiredSkills=["Python", " python ", "Go, SQL", ""]))
        assert parsed.required_skills == ["python", "go", "sql"]
        assert parsed.team_size == 3
        assert parsed.start_date == d("2024-03-01")

    def test_comma_separated_string(self):
        parsed = parse_project_request(project_request(requiredSkills="react, TypeScript"))
        assert parsed.required_skills == ["react", "typescript"]

    def test_status_defaults_to_planning(self):
        payload = project_request()
        del payload["status"]
        assert parse_project_request(payload).status == "planning"

    def test_raises_with_errors(self):
        with pytest.raises(InvalidProjectError) as excinfo:
            parse_project_request(project_request(name="  "))
        assert [e.field for e in excinfo.value.errors] == ["name"]
        assert isinstance(excinfo.value, ValueError)

    def test_normalize_skills(self):
        assert normalize_skills(["Go", "go", "RUST,go"]) == ["go", "rust"]


class TestValidateRecords:
    def test_duplicate_engineer(self):
        with pytest.raises(ValueError, match="Duplicate engineer"):
            validate_engineers([make_engineer("e1"), make_engineer("e1")])

    def test_bad_role(self):
        with pytest.raises(ValueError, match="Invalid role"):
            validate_engineers([make_engineer(role="admin")])

    def test_negative_capacity(self):
        with pytest.raises(ValueError, match="max_capacity"):
            validate_engineers([make_engineer(max_capacity=-1)])

    def test_missing_capacity_is_full_time(self):
        validate_engineers([make_engineer(max_capacity=None)])

    def test_project_status(self):
        with pytest.raises(ValueError, match="unknown status"):
            validate_projects([make_project(status="archived")])

    def test_project_dates(self):
        with pytest.raises(ValueError, match="end_date"):
            validate_projects([make_project(start="2024-02-01", end="2024-01-01")])

    def test_assignment_allocation_range(self):
        with pytest.raises(ValueError, match="outside 1..100"):
            validate_assignments([make_assignment(allocation=0)])

    def test_assignment_unknown_engineer(self):
        with pytest.raises(ValueError, match="unknown engineer"):
            validate_assignments([make_assignment(engineer_id="ghost")], engineers=[make_engineer("e1")])

    def test_over_allocation_is_not_a_record_error(self):
        assignments = [make_assignment("a1", allocation=80), make_assignment("a2", allocation=80)]
        validate_assignments(assignments, [make_engineer("e1")], [make_project("p1")])
