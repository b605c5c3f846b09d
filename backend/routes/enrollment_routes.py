import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenUser, require_student
from backend.core.schemas import ApiModel, MessageResponse
from backend.database import get_db
from backend.models.course import Course
from backend.models.enrollment import Enrollment
from backend.routes.course_routes import get_course_or_404
from backend.services.learning import (
    calculate_progress,
    count_completed_chapters,
    count_course_chapters,
    is_enrolled,
)

router = APIRouter(tags=['enrollment'])

logger = logging.getLogger(__name__)


class EnrolledCourseResponse(ApiModel):
    id: int
    title: str
    description: str
    mentor_id: int
    progress: int
    completed: bool


def list_enrolled_courses_with_progress(db: Session, student_id: int) -> list[EnrolledCourseResponse]:
    courses = db.query(Course).join(
        Enrollment, Enrollment.course_id == Course.id,
    ).filter(
        Enrollment.student_id == student_id,
    ).order_by(Course.id.asc()).all()

    enrolled_courses: list[EnrolledCourseResponse] = []
    for course in courses:
        progress = calculate_progress(
            count_completed_chapters(db, student_id, course.id),
            count_course_chapters(db, course.id),
        )
        enrolled_courses.append(
            EnrolledCourseResponse(
                id=course.id,
                title=course.title,
                description=course.description,
                mentor_id=course.mentor_id,
                progress=progress,
                completed=progress == 100,
            )
        )

    return enrolled_courses


@router.get('/courses/enrolled', response_model=list[EnrolledCourseResponse])
def list_enrolled_courses(
    current_user: TokenUser = Depends(require_student),
    db: Session = Depends(get_db),
):
    return list_enrolled_courses_with_progress(db, current_user.user_id)


@router.post('/courses/{course_id}/enroll', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def enroll_in_course(
    course_id: int,
    current_user: TokenUser = Depends(require_student),
    db: Session = Depends(get_db),
):
    get_course_or_404(db, course_id)

    if is_enrolled(db, current_user.user_id, course_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Already enrolled')

    try:
        db.add(Enrollment(student_id=current_user.user_id, course_id=course_id))
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Already enrolled') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to enroll student %s in course %s', current_user.user_id, course_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error',
        ) from exc

    return {'message': 'Enrolled successfully'}
