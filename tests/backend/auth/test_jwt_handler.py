import jwt
import pytest

from backend.auth import jwt_handler
from backend.auth.passwords import hash_password, password_too_long, verify_password
from backend.core import config


def test_create_access_token_carries_user_id_and_role() -> None:
    token = jwt_handler.create_access_token(user_id=42, role='MENTOR')

    payload = jwt_handler.decode_access_token(token)

    assert payload['sub'] == '42'
    assert payload['role'] == 'MENTOR'
    assert payload['exp'] > payload['iat']


def test_decode_access_token_rejects_expired_token() -> None:
    token = jwt_handler.create_access_token(user_id=1, role='STUDENT', expires_minutes=-1)

    with pytest.raises(jwt.ExpiredSignatureError):
        jwt_handler.decode_access_token(token)


def test_decode_access_token_rejects_foreign_signature() -> None:
    token = jwt.encode({'sub': '1', 'role': 'ADMIN'}, 'someone-else', algorithm=config.JWT_ALGORITHM)

    with pytest.raises(jwt.InvalidSignatureError):
        jwt_handler.decode_access_token(token)


def test_hash_password_round_trip() -> None:
    hashed = hash_password('s3cret!')

    assert hashed != 's3cret!'
    assert verify_password('s3cret!', hashed) is True
    assert verify_password('wrong', hashed) is False


def test_verify_password_returns_false_for_malformed_hash() -> None:
    assert verify_password('anything', 'not-a-bcrypt-hash') is False


def test_password_length_limit_counts_utf8_bytes() -> None:
    assert password_too_long('x' * 72) is False
    assert password_too_long('é' * 37) is True
