"""Admin (operator) model and the admin/department link."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AdminRole(str, Enum):
    """Operator role. SuperAdmin sees incidents of every department."""

    SuperAdmin = "superadmin"
    IncidentManager = "incident_manager"


class AdminStatus(str, Enum):
    Active = "active"
    Inactive = "inactive"


class Admin(BaseModel):
    """An operator acting on assets and incidents."""

    id: str
    admin_id: str = Field(..., description="Login handle, e.g. 'jdoe'")
    name: str
    email: str
    phone: str = ""
    status: AdminStatus = AdminStatus.Active
    role: AdminRole = AdminRole.IncidentManager

    model_config = ConfigDict(str_strip_whitespace=True)

    def __repr__(self) -> str:
        return f"Admin(id={self.id!r}, admin_id={self.admin_id!r}, role={self.role.value})"


class AdminDepartment(BaseModel):
    """Many-to-many link between an Admin and a Department."""

    admin_id: str
    department_id: str

    model_config = ConfigDict(frozen=True)
