import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from docrouting.errors import NotFound
from docrouting.models.person import Department, Person
from docrouting.services.common import coerce_uuid


class DepartmentDirectory:
    @staticmethod
    def exists(db: Session, department_id) -> bool:
        department = db.get(Department, coerce_uuid(department_id))
        return bool(department and department.is_active)

    @staticmethod
    def get(db: Session, department_id) -> Department:
        department = db.get(Department, coerce_uuid(department_id))
        if not department:
            raise NotFound("Department not found")
        return department

    @staticmethod
    def name_of(db: Session, department_id) -> str:
        if department_id is None:
            return "No Department"
        department = db.get(Department, coerce_uuid(department_id))
        return department.name if department else "Unknown"

    @staticmethod
    def member_ids(db: Session, department_id) -> list[uuid.UUID]:
        stmt = (
            select(Person.id)
            .where(Person.department_id == coerce_uuid(department_id))
            .where(Person.is_active.is_(True))
        )
        return list(db.scalars(stmt).all())


directory = DepartmentDirectory()
