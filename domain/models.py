from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Status(str, Enum):
    ACTIVE = "active"
    DEACTIVATED = "deactivated"


@dataclass
class User:
    """
    Locally cached compatibility record for a registered player.

    The external authority owns `id`, `username` and `phone`; `role`,
    `status` and `points` only exist in this local copy. `points` is the
    only field mutated after creation.

    Keys of the stored entry this model does not know about are kept in
    `extra` and written back with it.
    """

    id: str
    username: str
    role: Role = Role.USER
    phone: str = ""
    points: int = 0
    status: Status = Status.ACTIVE
    referral_code: str = ""
    created_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_active(self) -> bool:
        return self.status is Status.ACTIVE

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass
class CanonicalUser:
    """
    Identity record as issued by the external authority.

    Anything the authority returns beyond the known columns is kept in
    `extra` so it can be written back untouched.
    """

    id: str
    username: str
    phone: str = ""
    is_active: bool = True
    created_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StorageEvent:
    """A change made to the key-value medium by some execution context."""

    key: str
    old_value: Optional[str]
    new_value: Optional[str]
    origin: str
