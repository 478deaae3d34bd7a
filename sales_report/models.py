from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Identity:
    """An authenticated principal (one row of `sales_persons`, minus secrets)."""

    id: int
    name: str
    email: str
    department: str
    is_manager: bool

    @classmethod
    def from_row(cls, row: Any) -> "Identity":
        return cls(
            id=int(row["sales_person_id"]),
            name=str(row["name"] or ""),
            email=str(row["email"]),
            department=str(row["department"] or ""),
            is_manager=bool(int(row["is_manager"] or 0)),
        )

    def public(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "department": self.department,
            "is_manager": self.is_manager,
        }
