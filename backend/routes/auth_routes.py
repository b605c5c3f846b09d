import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.passwords import MAX_PASSWORD_BYTES, hash_password, password_too_long, verify_password
from backend.core import config
from backend.core.schemas import ApiModel, MessageResponse
from backend.database import get_db
from backend.models.user import Role, User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


def _require_text(value: str, field_name: str) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise ValueError(f'{field_name} is required.')
    return normalized


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _require_text(value, 'Name')

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = _require_text(value, 'Email').lower()
        if '@' not in normalized:
            raise ValueError('Email is invalid.')
        return normalized

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        if password_too_long(value):
            raise ValueError(f'Password must be at most {MAX_PASSWORD_BYTES} bytes.')
        return value


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _require_text(value, 'Email').lower()

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value:
            raise ValueError('Password is required.')
        return value


class LoginResponse(ApiModel):
    token: str
    role: Role
    user_id: int
    message: str


def create_account(db: Session, data: RegisterRequest, role: Role) -> User:
    existing_user = db.query(User.id).filter(User.email == data.email).first()
    if existing_user:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='User already exists')

    try:
        user = User(
            name=data.name,
            email=data.email,
            hashed_password=hash_password(data.password),
            role=role.value,
            approved=False,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='User already exists') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to register %s account', role.value.lower())
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error',
        ) from exc

    logger.info('Registered %s account %s', role.value.lower(), user.id)
    return user


@router.post('/register/student', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register_student(data: RegisterRequest, db: Session = Depends(get_db)):
    create_account(db, data, Role.STUDENT)
    return {'message': 'Student registered successfully'}


@router.post('/register/mentor', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register_mentor(data: RegisterRequest, db: Session = Depends(get_db)):
    create_account(db, data, Role.MENTOR)
    return {'message': 'Mentor registered successfully'}


@router.post('/create-admin', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def create_admin(data: RegisterRequest, db: Session = Depends(get_db)):
    if not config.ADMIN_BOOTSTRAP_ENABLED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Admin bootstrap is disabled')

    create_account(db, data, Role.ADMIN)
    return {'message': 'Admin created successfully'}


@router.post('/login', response_model=LoginResponse)
def login(data: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == data.email).first()
    if user is None or not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid credentials')

    token = jwt_handler.create_access_token(user_id=user.id, role=user.role)
    return LoginResponse(
        token=token,
        role=user.role,
        user_id=user.id,
        message='Login successful',
    )
