from __future__ import annotations

from typing import Protocol
from uuid import UUID

from lms.models.learning import Certificate
from lms.repos.errors import DuplicateRecordError


class CertificateRepo(Protocol):
    async def get(self, user_id: UUID, course_id: UUID) -> Certificate | None: ...
    async def get_by_id(self, certificate_id: UUID) -> Certificate | None: ...
    async def add(self, certificate: Certificate) -> None: ...
    async def list_by_user(self, user_id: UUID) -> list[Certificate]: ...
    async def count_by_course(self, course_id: UUID) -> int: ...


class InMemoryCertificateRepo:
    """Append-only: there is deliberately no update or delete."""

    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], Certificate] = {}

    async def get(self, user_id: UUID, course_id: UUID) -> Certificate | None:
        return self._store.get((user_id, course_id))

    async def get_by_id(self, certificate_id: UUID) -> Certificate | None:
        return next((c for c in self._store.values() if c.id == certificate_id), None)

    async def add(self, certificate: Certificate) -> None:
        key = (certificate.user_id, certificate.course_id)
        if key in self._store:
            raise DuplicateRecordError("certificate already issued")
        self._store[key] = certificate

    async def list_by_user(self, user_id: UUID) -> list[Certificate]:
        found = [c for c in self._store.values() if c.user_id == user_id]
        return sorted(found, key=lambda c: c.issued_at, reverse=True)

    async def count_by_course(self, course_id: UUID) -> int:
        return sum(1 for c in self._store.values() if c.course_id == course_id)
