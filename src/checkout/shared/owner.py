"""Owner: who a cart, order or payment audit belongs to.

A buyer is either an end user or an employer purchasing on its own account.
Aggregates and commands store the two halves as plain ``owner_kind`` /
``owner_id`` fields so repositories can filter on them, and expose them
together as an ``Owner``.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError


class OwnerKind(Enum):
    USER = "user"
    EMPLOYER = "employer"


# Timeline actor label for each owner kind
ACTOR_TYPES = {
    OwnerKind.USER.value: "User",
    OwnerKind.EMPLOYER.value: "Employer",
}


@dataclass(frozen=True)
class Owner:
    kind: str
    id: str

    def __post_init__(self):
        if self.kind not in ACTOR_TYPES:
            raise ValidationError({"owner_kind": [f"Unknown owner kind: {self.kind}"]})
        if not self.id:
            raise ValidationError({"owner_id": ["Owner id is required"]})

    @classmethod
    def user(cls, owner_id) -> "Owner":
        return cls(kind=OwnerKind.USER.value, id=str(owner_id))

    @classmethod
    def employer(cls, owner_id) -> "Owner":
        return cls(kind=OwnerKind.EMPLOYER.value, id=str(owner_id))

    @classmethod
    def parse(cls, kind: str | None, owner_id) -> "Owner":
        return cls(kind=(kind or "").strip().lower(), id=str(owner_id or "").strip())

    @property
    def actor_type(self) -> str:
        return ACTOR_TYPES[self.kind]

    def as_fields(self) -> dict:
        return {"owner_kind": self.kind, "owner_id": self.id}


def owner_of(record) -> Owner:
    """Build the Owner of any aggregate carrying owner_kind / owner_id."""
    return Owner(kind=record.owner_kind, id=str(record.owner_id))


def is_owned_by(record, owner: Owner) -> bool:
    return record.owner_kind == owner.kind and str(record.owner_id) == str(owner.id)
