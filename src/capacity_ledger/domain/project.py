from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List

PROJECT_STATUSES = ("planning", "active", "completed")


@dataclass(frozen=True)
class Project:
    """
    Represents a project engineers can be assigned to.

    Attributes
    ----------
    project_id : str
        Unique identifier of the project.
    name : str
        Display name.
    start_date : date
        Planned start. New assignments default to the project window.
    end_date : date
        Planned end.
    description : str
        Free text.
    required_skills : List[str]
        Lower-cased skills the team should cover.
    team_size : int
        Number of engineers the project wants.
    status : str
        One of "planning", "active", "completed".
        Completed projects no longer accept assignments.
    manager_id : str
        Manager who owns the project.
    """
    project_id: str
    name: str
    start_date: date
    end_date: date
    description: str = ""
    required_skills: List[str] = field(default_factory=list)
    team_size: int = 1
    status: str = "planning"
    manager_id: str = ""

    @property
    def accepts_assignments(self) -> bool:
        return self.status != "completed"
