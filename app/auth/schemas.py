from typing import Literal

from pydantic import BaseModel

Role = Literal["admin", "coordinator", "teacher", "viewer"]


class CurrentUser(BaseModel):
    id: str
    username: str = ""
    role: Role
    status: str = "active"

    @property
    def is_coordinator(self) -> bool:
        return self.role == "coordinator"
