# backend/telecloud/services/auth_service.py

from telecloud.repositories.base import BaseRepository
from telecloud.schemas.owner import OwnerCreate, OwnerInDB
from telecloud.core.security import hash_password, password_matches
from telecloud.core.exceptions import Conflict, Unauthenticated, Unauthorized


def register_owner(owner_create: OwnerCreate, db: BaseRepository, role: str = "user") -> OwnerInDB:
    if db.get_owner_by_email(owner_create.email):
        raise Conflict("Bu email adresi zaten kayıtlı.")
    return db.create_owner(owner_create, hash_password(owner_create.password), role=role)


def authenticate_owner(email: str, password: str, db: BaseRepository) -> OwnerInDB:
    """
    Email/şifre çiftini doğrular. Hangisinin yanlış olduğu söylenmez.
    Pasif hesaplar doğru şifreyle bile giriş yapamaz.
    """
    owner = db.get_owner_by_email(email.strip().lower())
    if owner is None or not password_matches(password, owner.hashed_password):
        raise Unauthenticated("Hatalı email veya şifre.")
    if not owner.is_active:
        raise Unauthorized("Hesabınız devre dışı bırakılmış.")
    return owner
