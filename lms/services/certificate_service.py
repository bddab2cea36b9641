"""Certificate issuance and lookup.

Issuance is idempotent: at most one certificate per (user, course),
enforced by the store's unique constraint.  Certificates are never
revoked, even if the learner later marks a lesson incomplete.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import UUID

from lms.core.errors import NotFoundError
from lms.core.metrics import CERTIFICATES
from lms.models.course import Course
from lms.models.learning import Certificate
from lms.models.principal import Principal
from lms.repos.errors import DuplicateRecordError
from lms.repos.gateway import Gateway
from lms.services import completion

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CertificateView:
    certificate: Certificate
    course: Course | None
    holder_name: str | None = None


class CertificateService:
    def __init__(self, gateway: Gateway) -> None:
        self._gw = gateway

    async def issue_if_complete(
        self, user_id: UUID, course_id: UUID
    ) -> Certificate | None:
        """Return the user's certificate for the course, creating it on first
        full completion.  None while the course is incomplete."""
        if not await completion.is_course_complete(
            self._gw.progress, user_id, course_id
        ):
            return None

        existing = await self._gw.certificates.get(user_id, course_id)
        if existing is not None:
            CERTIFICATES.labels(result="existing").inc()
            return existing

        certificate = Certificate.new(user_id=user_id, course_id=course_id)
        try:
            await self._gw.certificates.add(certificate)
        except DuplicateRecordError:
            # A concurrent request completed the course first.
            winner = await self._gw.certificates.get(user_id, course_id)
            if winner is None:
                raise
            CERTIFICATES.labels(result="existing").inc()
            logger.info(
                "Certificate race lost, returning existing user=%s course=%s",
                user_id,
                course_id,
            )
            return winner

        CERTIFICATES.labels(result="issued").inc()
        logger.info(
            "Certificate issued id=%s user=%s course=%s",
            certificate.id,
            user_id,
            course_id,
            extra={"user_id": str(user_id), "course_id": str(course_id)},
        )
        return certificate

    async def list_certificates(self, principal: Principal) -> list[CertificateView]:
        views = []
        for cert in await self._gw.certificates.list_by_user(principal.user_id):
            course = await self._gw.courses.get_course(cert.course_id)
            views.append(CertificateView(certificate=cert, course=course))
        return views

    async def verify(self, certificate_id: UUID) -> CertificateView:
        """Public lookup so third parties can check a certificate id."""
        cert = await self._gw.certificates.get_by_id(certificate_id)
        if cert is None:
            raise NotFoundError("Certificate not found")
        course = await self._gw.courses.get_course(cert.course_id)
        holder = await self._gw.users.get_by_id(cert.user_id)
        return CertificateView(
            certificate=cert,
            course=course,
            holder_name=holder.name if holder is not None else None,
        )
