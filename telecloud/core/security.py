# backend/telecloud/core/security.py
# Kimlik kapısı: bcrypt ile şifre, HS256 ile oturum token'ı.

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from telecloud.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from telecloud.core.exceptions import Unauthenticated
from telecloud.schemas.owner import TokenData

VALID_ROLES = ("user", "admin")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def password_matches(plain_password: str, hashed_password: Optional[str]) -> bool:
    # Şifresi olmayan kayıt (ör. yarım kalmış import) hiçbir şifreyle eşleşmez
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(email: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Sahip için oturum token'ı üretir.
    'sub' email, 'role' ise user/admin. Rol her istekte DB'den tekrar okunur,
    token'daki değer sadece istemcinin arayüz kararları içindir.
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {"sub": email, "role": role, "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenData:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise Unauthenticated("Oturum süresi doldu, tekrar giriş yapın.")
    except JWTError:
        raise Unauthenticated()

    email = payload.get("sub")
    role = payload.get("role")
    if not email or role not in VALID_ROLES:
        raise Unauthenticated()
    return TokenData(email=email, role=role)
