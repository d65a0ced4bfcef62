from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any

from .exceptions import MalformedPayload


class Role(IntEnum):
    """
    Closed set of client roles.

    The integer values are the ones used by the `type` field on the wire.
    """

    STUDENT = 0
    TEACHER = 1


@dataclass(frozen=True, slots=True)
class ClientIdentity:
    """
    Composite address of a connected client.

    This is a value, not a connection handle: two identities compare equal when
    both role and id match, regardless of which connection produced them.
    """

    role: Role
    id: str

    def __str__(self) -> str:
        return f"{self.role.name.lower()}:{self.id}"

    @classmethod
    def from_wire(cls, role: Any, client_id: Any) -> "ClientIdentity":
        """
        Build an identity from the raw `type` and `id` JSON fields.

        Ids may be JSON strings or numbers; they are normalised to `str` so
        that `1` and `"1"` address the same client.

        Raises
        ------
        MalformedPayload
            If the role is not one of the known roles or the id is missing.
        """
        if isinstance(role, bool):
            raise MalformedPayload(f"Invalid role: {role!r}")
        try:
            parsed_role = Role(int(role))
        except (TypeError, ValueError) as e:
            raise MalformedPayload(f"Invalid role: {role!r}") from e

        if isinstance(client_id, bool) or not isinstance(client_id, (str, int)):
            raise MalformedPayload(f"Invalid client id: {client_id!r}")

        normalized = str(client_id).strip()
        if not normalized:
            raise MalformedPayload("Client id must not be empty.")

        return cls(role=parsed_role, id=normalized)

    def to_dict(self) -> dict[str, object]:
        return {"type": int(self.role), "id": self.id}
