import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenUser, require_mentor, require_roles
from backend.core.schemas import ApiModel, MessageResponse
from backend.database import get_db
from backend.models.course import Chapter, Course
from backend.models.user import Role
from backend.routes.course_routes import get_course_or_404
from backend.services.learning import delete_chapter_cascade, is_enrolled

router = APIRouter(tags=['chapters'])

logger = logging.getLogger(__name__)


class CreateChapterRequest(BaseModel):
    title: str
    content: str

    @field_validator('title', 'content')
    @classmethod
    def validate_required_text(cls, value: str) -> str:
        normalized = (value or '').strip()
        if not normalized:
            raise ValueError('Title and content are required')
        return normalized


class ChapterResponse(ApiModel):
    id: int
    title: str
    content: str
    course_id: int
    created_at: datetime | None = None


class CreateChapterResponse(ApiModel):
    message: str
    chapter: ChapterResponse


def ensure_course_editable(course: Course, mentor_id: int, not_owner_detail: str) -> None:
    """Only the approved mentor who owns a course may change its chapters."""
    if course.mentor_id != mentor_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=not_owner_detail)

    if course.mentor is None or not course.mentor.approved:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Mentor not approved by admin')


@router.post(
    '/courses/{course_id}/chapters',
    response_model=CreateChapterResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_chapter(
    course_id: int,
    data: CreateChapterRequest,
    current_user: TokenUser = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    course = get_course_or_404(db, course_id)
    ensure_course_editable(course, current_user.user_id, 'Not your course')

    try:
        chapter = Chapter(title=data.title, content=data.content, course_id=course.id)
        db.add(chapter)
        db.commit()
        db.refresh(chapter)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to add chapter to course %s', course_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error',
        ) from exc

    return CreateChapterResponse(
        message='Chapter added successfully',
        chapter=ChapterResponse.model_validate(chapter),
    )


@router.get('/courses/{course_id}/chapters', response_model=list[ChapterResponse])
def list_course_chapters(
    course_id: int,
    current_user: TokenUser = Depends(require_roles(Role.STUDENT, Role.MENTOR)),
    db: Session = Depends(get_db),
):
    get_course_or_404(db, course_id)

    if current_user.role == Role.STUDENT and not is_enrolled(db, current_user.user_id, course_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Enroll in course to view chapters',
        )

    return db.query(Chapter).filter(
        Chapter.course_id == course_id,
    ).order_by(Chapter.created_at.asc(), Chapter.id.asc()).all()


@router.delete('/chapters/{chapter_id}', response_model=MessageResponse)
def delete_chapter(
    chapter_id: int,
    current_user: TokenUser = Depends(require_mentor),
    db: Session = Depends(get_db),
):
    chapter = db.query(Chapter).filter(Chapter.id == chapter_id).first()
    if chapter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Chapter not found')

    ensure_course_editable(chapter.course, current_user.user_id, 'Not allowed to delete this chapter')

    delete_chapter_cascade(db, chapter)
    return {'message': 'Chapter deleted successfully'}
