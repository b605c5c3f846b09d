"""Progress tracking and certificate issuance.

Completing a chapter records a one-way progress marker. Once a student has
completed every chapter of a course the certificate is issued through
``issue_certificate``, which is safe to call repeatedly and concurrently:
it relies on the (student_id, course_id) unique constraint instead of a
read-then-insert sequence.
"""

import logging
from datetime import datetime, timezone

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models.course import Chapter, Course
from backend.models.enrollment import Enrollment
from backend.models.progress import Certificate, ChapterProgress, generate_certificate_no

logger = logging.getLogger(__name__)

SERVER_ERROR_DETAIL = 'Server error'


class CertificateEligibility(BaseModel):
    enrolled: bool
    total_chapters: int
    completed_chapters: int
    already_certified: bool

    @property
    def all_chapters_completed(self) -> bool:
        return self.total_chapters > 0 and self.completed_chapters == self.total_chapters


def calculate_progress(completed: int, total: int) -> int:
    """Percentage of completed chapters, rounded half up."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def is_enrolled(db: Session, student_id: int, course_id: int) -> bool:
    return db.query(Enrollment.id).filter(
        Enrollment.student_id == student_id,
        Enrollment.course_id == course_id,
    ).first() is not None


def count_course_chapters(db: Session, course_id: int) -> int:
    return db.query(func.count(Chapter.id)).filter(Chapter.course_id == course_id).scalar() or 0


def count_completed_chapters(db: Session, student_id: int, course_id: int) -> int:
    return db.query(func.count(ChapterProgress.id)).join(
        Chapter, Chapter.id == ChapterProgress.chapter_id,
    ).filter(
        ChapterProgress.student_id == student_id,
        Chapter.course_id == course_id,
    ).scalar() or 0


def get_certificate(db: Session, student_id: int, course_id: int) -> Certificate | None:
    return db.query(Certificate).filter(
        Certificate.student_id == student_id,
        Certificate.course_id == course_id,
    ).first()


def evaluate_certificate_eligibility(db: Session, student_id: int, course_id: int) -> CertificateEligibility:
    return CertificateEligibility(
        enrolled=is_enrolled(db, student_id, course_id),
        total_chapters=count_course_chapters(db, course_id),
        completed_chapters=count_completed_chapters(db, student_id, course_id),
        already_certified=get_certificate(db, student_id, course_id) is not None,
    )


def require_certificate_eligibility(db: Session, student_id: int, course_id: int) -> CertificateEligibility:
    """Raise the HTTP error that explains why a certificate cannot be generated."""
    eligibility = evaluate_certificate_eligibility(db, student_id, course_id)

    if not eligibility.enrolled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Enroll in course first')
    if eligibility.already_certified:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Certificate already generated')
    if eligibility.total_chapters == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Course has no chapters')
    if not eligibility.all_chapters_completed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Complete all chapters to get certificate',
        )

    return eligibility


def _insert_certificate_if_absent(db: Session, student_id: int, course_id: int) -> bool:
    values = {
        'certificate_no': generate_certificate_no(),
        'student_id': student_id,
        'course_id': course_id,
        'issued_at': datetime.now(timezone.utc),
    }
    dialect_name = db.get_bind().dialect.name

    if dialect_name in ('postgresql', 'sqlite'):
        dialect_insert = postgresql.insert if dialect_name == 'postgresql' else sqlite.insert
        statement = dialect_insert(Certificate.__table__).values(**values).on_conflict_do_nothing(
            index_elements=['student_id', 'course_id'],
        )
        result = db.execute(statement)
        return result.rowcount == 1

    try:
        with db.begin_nested():
            db.add(Certificate(**values))
    except IntegrityError:
        return False
    return True


def issue_certificate(db: Session, student_id: int, course_id: int) -> tuple[Certificate, bool]:
    """Create the certificate for a student and course unless it already exists.

    Returns the stored certificate and whether this call created it. The
    caller owns the transaction and must commit.
    """
    created = _insert_certificate_if_absent(db, student_id, course_id)
    certificate = get_certificate(db, student_id, course_id)

    if created:
        logger.info(
            'Issued certificate %s to student %s for course %s',
            certificate.certificate_no,
            student_id,
            course_id,
        )
    return certificate, created


def record_chapter_completion(db: Session, student_id: int, chapter_id: int) -> ChapterProgress:
    chapter = db.query(Chapter).filter(Chapter.id == chapter_id).first()
    if chapter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Chapter not found')

    if not is_enrolled(db, student_id, chapter.course_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Not enrolled in course')

    existing = db.query(ChapterProgress.id).filter(
        ChapterProgress.student_id == student_id,
        ChapterProgress.chapter_id == chapter_id,
    ).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Already completed')

    try:
        progress = ChapterProgress(student_id=student_id, chapter_id=chapter_id)
        db.add(progress)
        db.flush()

        eligibility = evaluate_certificate_eligibility(db, student_id, chapter.course_id)
        if eligibility.all_chapters_completed and not eligibility.already_certified:
            issue_certificate(db, student_id, chapter.course_id)

        db.commit()
        db.refresh(progress)
        return progress
    except IntegrityError as exc:
        db.rollback()
        # A foreign key failure means the chapter was deleted while completing it.
        if db.query(Chapter.id).filter(Chapter.id == chapter_id).first() is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Chapter not found') from exc
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Already completed') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to record completion of chapter %s for student %s', chapter_id, student_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_ERROR_DETAIL,
        ) from exc


def get_course_progress(db: Session, student_id: int, course_id: int) -> tuple[int, list[int]]:
    chapter_ids = [
        chapter_id
        for (chapter_id,) in db.query(Chapter.id).filter(Chapter.course_id == course_id).all()
    ]
    if not chapter_ids:
        return 0, []

    completed_chapter_ids = [
        chapter_id
        for (chapter_id,) in db.query(ChapterProgress.chapter_id).filter(
            ChapterProgress.student_id == student_id,
            ChapterProgress.chapter_id.in_(chapter_ids),
        ).order_by(ChapterProgress.completed_at.asc(), ChapterProgress.id.asc()).all()
    ]

    return calculate_progress(len(completed_chapter_ids), len(chapter_ids)), completed_chapter_ids


def delete_course_cascade(db: Session, course: Course) -> None:
    """Remove a course and everything that hangs off it in one transaction."""
    chapter_ids = select(Chapter.id).where(Chapter.course_id == course.id)

    try:
        db.query(ChapterProgress).filter(
            ChapterProgress.chapter_id.in_(chapter_ids),
        ).delete(synchronize_session=False)
        db.query(Chapter).filter(Chapter.course_id == course.id).delete(synchronize_session=False)
        db.query(Enrollment).filter(Enrollment.course_id == course.id).delete(synchronize_session=False)
        db.query(Certificate).filter(Certificate.course_id == course.id).delete(synchronize_session=False)
        db.delete(course)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete course %s', course.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_ERROR_DETAIL,
        ) from exc

    logger.info('Deleted course %s', course.id)


def delete_chapter_cascade(db: Session, chapter: Chapter) -> None:
    try:
        db.query(ChapterProgress).filter(
            ChapterProgress.chapter_id == chapter.id,
        ).delete(synchronize_session=False)
        db.delete(chapter)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to delete chapter %s', chapter.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_ERROR_DETAIL,
        ) from exc
