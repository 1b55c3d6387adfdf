import enum
from typing import List, Optional

from pydantic import BaseModel

from scrumboard.schemas.sprint import SprintBoard


class ProjectRole(str, enum.Enum):
    scrum_master = "scrum_master"
    product_owner = "product_owner"
    team_member = "team_member"


ROLE_LABELS = {
    ProjectRole.scrum_master: "Scrum Master",
    ProjectRole.product_owner: "Product Owner",
    ProjectRole.team_member: "Team Member",
}


class Project(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    owner_id: str
    owner_name: Optional[str] = None


class Collaborator(BaseModel):
    id: str
    user_id: str
    username: str
    email: Optional[str] = None
    role: ProjectRole = ProjectRole.team_member

    @property
    def role_label(self) -> str:
        return ROLE_LABELS.get(self.role, "Team Member")


class TeamMemberResponse(BaseModel):
    user_id: str
    username: str
    email: Optional[str] = None
    role: str
    role_label: str


class TeamRoster(BaseModel):
    owner: Optional[TeamMemberResponse] = None
    members: List[TeamMemberResponse] = []


class ProjectDashboard(BaseModel):
    project: Project
    is_owner: bool
    user_role: Optional[str] = None
    active_sprint: Optional[SprintBoard] = None
