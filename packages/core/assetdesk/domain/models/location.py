"""Organization structure: departments and rooms."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from assetdesk.domain.models.admin import Admin


class Department(BaseModel):
    id: str
    department_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    contact: str = ""

    model_config = ConfigDict(str_strip_whitespace=True)


class Room(BaseModel):
    """A room (office). Rooms carry the department link used for visibility."""

    id: str
    room_number: str
    floor_number: int
    building_name: str
    department_id: str | None = None


class DepartmentListing(BaseModel):
    """A department with its rooms and managers, as listed in the directory."""

    department: Department
    rooms: list[Room] = Field(default_factory=list)
    managers: list[Admin] = Field(default_factory=list)

    @property
    def room_count(self) -> int:
        return len(self.rooms)

    @property
    def manager_count(self) -> int:
        return len(self.managers)

    def to_response(self) -> dict[str, Any]:
        return {
            "_id": self.department.id,
            "department_id": self.department.department_id,
            "name": self.department.name,
            "contact": self.department.contact,
            "rooms": [
                {
                    "room_number": room.room_number,
                    "floor_number": room.floor_number,
                    "building_name": room.building_name,
                }
                for room in self.rooms
            ],
            "roomCount": self.room_count,
            "managers": [
                {"name": admin.name, "email": admin.email, "role": admin.role.value}
                for admin in self.managers
            ],
            "managerCount": self.manager_count,
        }
