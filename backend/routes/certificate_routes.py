import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenUser, require_student
from backend.core.schemas import ApiModel
from backend.database import get_db
from backend.models.progress import Certificate
from backend.routes.course_routes import get_course_or_404
from backend.services.certificate_document import render_certificate_pdf
from backend.services.learning import get_certificate, issue_certificate, require_certificate_eligibility

router = APIRouter(tags=['certificates'])

logger = logging.getLogger(__name__)


class CertificateCourseSummary(ApiModel):
    id: int
    title: str


class CertificateResponse(ApiModel):
    id: int
    certificate_no: str
    student_id: int
    course_id: int
    issued_at: datetime | None = None


class MyCertificateResponse(CertificateResponse):
    course: CertificateCourseSummary


class GenerateCertificateResponse(ApiModel):
    message: str
    certificate: CertificateResponse


@router.post(
    '/courses/{course_id}/certificate',
    response_model=GenerateCertificateResponse,
    status_code=status.HTTP_201_CREATED,
)
def generate_certificate(
    course_id: int,
    current_user: TokenUser = Depends(require_student),
    db: Session = Depends(get_db),
):
    get_course_or_404(db, course_id)
    require_certificate_eligibility(db, current_user.user_id, course_id)

    try:
        certificate, created = issue_certificate(db, current_user.user_id, course_id)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to generate certificate for student %s', current_user.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error',
        ) from exc

    if not created:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Certificate already generated')

    return GenerateCertificateResponse(
        message='Certificate generated successfully',
        certificate=CertificateResponse.model_validate(certificate),
    )


@router.get('/courses/{course_id}/certificate/download')
def download_certificate(
    course_id: int,
    current_user: TokenUser = Depends(require_student),
    db: Session = Depends(get_db),
):
    certificate = get_certificate(db, current_user.user_id, course_id)
    if certificate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Certificate not found')

    document = render_certificate_pdf(
        student_name=certificate.student.name,
        course_title=certificate.course.title,
        issued_at=certificate.issued_at,
        certificate_no=certificate.certificate_no,
    )
    return Response(
        content=document,
        media_type='application/pdf',
        headers={'Content-Disposition': f'inline; filename=certificate_{certificate.certificate_no}.pdf'},
    )


@router.get('/certificates/my', response_model=list[MyCertificateResponse])
def list_my_certificates(
    current_user: TokenUser = Depends(require_student),
    db: Session = Depends(get_db),
):
    return db.query(Certificate).filter(
        Certificate.student_id == current_user.user_id,
    ).order_by(Certificate.issued_at.desc(), Certificate.id.desc()).all()
