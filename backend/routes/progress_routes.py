from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenUser, require_student
from backend.core.schemas import ApiModel
from backend.database import get_db
from backend.services.learning import get_course_progress, record_chapter_completion

router = APIRouter(tags=['progress'])


class CompleteChapterResponse(ApiModel):
    success: bool
    message: str


class CourseProgressResponse(ApiModel):
    progress: int
    completed_chapter_ids: list[int]


@router.post('/chapters/{chapter_id}/complete', response_model=CompleteChapterResponse)
def complete_chapter(
    chapter_id: int,
    current_user: TokenUser = Depends(require_student),
    db: Session = Depends(get_db),
):
    record_chapter_completion(db, current_user.user_id, chapter_id)
    return CompleteChapterResponse(success=True, message='Chapter completed successfully')


@router.get('/courses/{course_id}/progress', response_model=CourseProgressResponse)
def course_progress(
    course_id: int,
    current_user: TokenUser = Depends(require_student),
    db: Session = Depends(get_db),
):
    progress, completed_chapter_ids = get_course_progress(db, current_user.user_id, course_id)
    return CourseProgressResponse(progress=progress, completed_chapter_ids=completed_chapter_ids)
