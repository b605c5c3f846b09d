import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenUser, require_mentor
from backend.core.schemas import ApiModel, MessageResponse
from backend.database import get_db
from backend.models.course import Course
from backend.services.learning import delete_course_cascade

router = APIRouter(tags=['courses'])

logger = logging.getLogger(__name__)


class CreateCourseRequest(BaseModel):
    title: str
    description: str

    @field_validator('title', 'description')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = (value or '').strip()
        if not normalized:
            raise ValueError('Title and description required')
        return normalized


class CourseResponse(ApiModel):
    id: int
    title: str
    description: str
    mentor_id: int
    created_at: datetime | None = None


class CreateCourseResponse(ApiModel):
    message: str
    course: CourseResponse


def get_course_or_404(db: Session, course_id: int) -> Course:
    course = db.query(Course).filter(Course.id == course_id).first()
    if course is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Course not found')
    return course


@router.get('/courses', response_model=list[CourseResponse])
def list_courses(db: Session = Depends(get_db)):
    return db.query(Course).order_by(Course.id.asc()).all()


@router.post('/courses', response_model=CreateCourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    data: CreateCourseRequest,
    current_user: TokenUser = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    try:
        course = Course(
            title=data.title,
            description=data.description,
            mentor_id=current_user.user_id,
        )
        db.add(course)
        db.commit()
        db.refresh(course)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to create course for mentor %s', current_user.user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error',
        ) from exc

    return CreateCourseResponse(
        message='Course created successfully',
        course=CourseResponse.model_validate(course),
    )


@router.get('/my-courses', response_model=list[CourseResponse])
def list_my_courses(
    current_user: TokenUser = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    return db.query(Course).filter(
        Course.mentor_id == current_user.user_id,
    ).order_by(Course.id.asc()).all()


@router.get('/courses/{course_id}', response_model=CourseResponse)
def get_course(course_id: int, db: Session = Depends(get_db)):
    return get_course_or_404(db, course_id)


@router.delete('/courses/{course_id}', response_model=MessageResponse)
def delete_course(
    course_id: int,
    current_user: TokenUser = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    course = get_course_or_404(db, course_id)

    if course.mentor_id != current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='You are not allowed to delete this course',
        )

    delete_course_cascade(db, course)
    return {'message': 'Course deleted successfully'}
