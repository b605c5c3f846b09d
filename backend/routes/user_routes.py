import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth.dependencies import TokenUser, get_current_user, require_admin
from backend.core.schemas import ApiModel
from backend.database import get_db
from backend.models.user import Role, User

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)


class UserResponse(ApiModel):
    id: int
    name: str
    email: str
    role: Role
    approved: bool
    created_at: datetime | None = None


class MentorSummary(ApiModel):
    id: int
    name: str
    email: str
    approved: bool


class ApproveMentorResponse(ApiModel):
    message: str
    mentor: MentorSummary


@router.get('/me', response_model=UserResponse)
def me(current_user: TokenUser = Depends(get_current_user), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == current_user.user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found')
    return user


@router.get('/admin/users', response_model=list[UserResponse])
def list_users(
    _admin: TokenUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return db.query(User).order_by(User.id.asc()).all()


@router.patch('/admin/approve-mentor/{mentor_id}', response_model=ApproveMentorResponse)
def approve_mentor(
    mentor_id: int,
    _admin: TokenUser = Depends(require_admin),
    db: Session = Depends(get_db),
):
    mentor = db.query(User).filter(User.id == mentor_id).first()
    if mentor is None or mentor.role != Role.MENTOR.value:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Mentor not found')

    try:
        mentor.approved = True
        db.commit()
        db.refresh(mentor)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to approve mentor %s', mentor_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error',
        ) from exc

    logger.info('Approved mentor %s', mentor.id)
    return ApproveMentorResponse(
        message='Mentor approved successfully',
        mentor=MentorSummary.model_validate(mentor),
    )
