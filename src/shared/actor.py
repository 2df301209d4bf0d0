"""The already-authenticated caller driving an operation."""

from dataclasses import dataclass

PRIVILEGED_ROLES = frozenset({"admin", "super_admin", "system"})


@dataclass(frozen=True)
class Actor:
    id: str
    role: str = "customer"

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @classmethod
    def system(cls) -> "Actor":
        return cls(id="system", role="system")
