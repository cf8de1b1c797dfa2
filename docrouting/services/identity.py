from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from docrouting.errors import NotFound, Unauthorized
from docrouting.models.person import Person, PersonRole
from docrouting.services.common import coerce_uuid


@dataclass(frozen=True)
class Actor:
    """The identity every routing operation is performed on behalf of."""

    user_id: uuid.UUID
    department_id: uuid.UUID | None
    role: PersonRole = PersonRole.user
    is_active: bool = True

    @property
    def is_elevated(self) -> bool:
        return self.role == PersonRole.admin

    @classmethod
    def from_person(cls, person: Person) -> Actor:
        return cls(
            user_id=person.id,
            department_id=person.department_id,
            role=person.role,
            is_active=bool(person.is_active),
        )


@dataclass(frozen=True)
class DepartmentTarget:
    department_id: uuid.UUID


@dataclass(frozen=True)
class UserTarget:
    user_id: uuid.UUID


Target = DepartmentTarget | UserTarget


def resolve_actor(db: Session, user_id) -> Actor:
    person = db.get(Person, coerce_uuid(user_id))
    if not person:
        raise NotFound("Person not found")
    return Actor.from_person(person)


def require_active(actor: Actor) -> None:
    if not actor.is_active:
        raise Unauthorized("User account is not active")
    if actor.department_id is None:
        raise Unauthorized("User does not have a department assigned")
