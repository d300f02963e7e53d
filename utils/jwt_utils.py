# utils/jwt_utils.py

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from database import get_db
from models.user_model import User
from schemas.user_schema import TokenData
from utils.app_config import JWT_SECRET_KEY, JWT_ALGORITHM
from utils.exceptions import Forbidden

# Tokens are issued by the auth service; this app only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/users/login")


def decode_access_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        return None

    # sub    -> email
    # sub_id -> user id
    user_id = payload.get("sub_id")
    email = payload.get("sub")

    if user_id is None or email is None:
        return None

    return TokenData(user_id=int(user_id), email=email)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    token_data = decode_access_token(token)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, token_data.user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_admin_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise Forbidden()
    return current_user
