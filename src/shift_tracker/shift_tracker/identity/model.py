from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Worker:
    """Domain entity: a signed-in worker as provided by the identity layer."""

    worker_id: str
    display_name: str
    role: Role
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
