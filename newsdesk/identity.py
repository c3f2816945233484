"""
Who is making the request.

``Role`` is the single canonical role numbering used everywhere
(Admin=1, Staff=2, Lecturer=3).  ``Identity`` is the immutable snapshot
of an account that lives in the session store; it never carries the
password hash.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import IntEnum


class Role(IntEnum):
    ADMIN = 1
    STAFF = 2
    LECTURER = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def lowest(cls) -> "Role":
        """The least-privileged role; assigned when none is given."""
        return cls.LECTURER

    @classmethod
    def parse(cls, value) -> "Role":
        """Accept a Role, its number, or its case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and not value.strip().isdigit():
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(f"Unknown role: {value!r}") from None
        return cls(int(value))


@dataclass(frozen=True)
class Identity:
    account_id: int
    email: str
    name: str
    role: Role

    @classmethod
    def from_account(cls, account) -> "Identity":
        return cls(
            account_id=account.id,
            email=account.email,
            name=account.name,
            role=Role(account.role),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["role"] = int(self.role)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Identity":
        return cls(
            account_id=int(data["account_id"]),
            email=data["email"],
            name=data["name"],
            role=Role(int(data["role"])),
        )
