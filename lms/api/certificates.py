from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from lms.api.dependencies import CurrentUser, get_certificate_service
from lms.services.certificate_service import CertificateService, CertificateView

router = APIRouter(tags=["certificates"])

CertificateServiceDep = Annotated[CertificateService, Depends(get_certificate_service)]


class CertificateOut(BaseModel):
    id: UUID
    user_id: UUID
    course_id: UUID
    course_title: str | None
    course_slug: str | None
    issued_at: int
    holder_name: str | None = None


def _out(view: CertificateView) -> CertificateOut:
    cert = view.certificate
    return CertificateOut(
        id=cert.id,
        user_id=cert.user_id,
        course_id=cert.course_id,
        course_title=view.course.title if view.course else None,
        course_slug=view.course.slug if view.course else None,
        issued_at=cert.issued_at,
        holder_name=view.holder_name,
    )


@router.get("/v1/me/certificates", response_model=list[CertificateOut])
async def my_certificates(
    principal: CurrentUser, service: CertificateServiceDep
) -> list[CertificateOut]:
    return [_out(v) for v in await service.list_certificates(principal)]


@router.get("/v1/certificates/{certificate_id}/verify", response_model=CertificateOut)
async def verify_certificate(
    certificate_id: UUID, service: CertificateServiceDep
) -> CertificateOut:
    """Public: anyone holding a certificate id can confirm it is genuine."""
    return _out(await service.verify(certificate_id))
