# backend/telecloud/dependencies.py

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from telecloud.core.config import DEPLOYMENT_TYPE
from telecloud.repositories.base import BaseRepository
from telecloud.storage_adapters.base import BaseBlobRelay
from telecloud.storage_adapters.telegram_relay import TelegramRelay
from telecloud.schemas.owner import OwnerInDB, TokenData
from telecloud.core.security import decode_access_token
from telecloud.core.exceptions import Unauthenticated, Unauthorized

# --- Veritabanı Bağımlılığı ---
_db_repository = None


def get_db_repository() -> BaseRepository:
    """Yapılandırmaya göre doğru DB repository'sini döndürür."""
    global _db_repository
    if _db_repository is None:
        if DEPLOYMENT_TYPE == "firestore":
            from telecloud.repositories.firestore_repo import FirestoreRepository
            _db_repository = FirestoreRepository()
        elif DEPLOYMENT_TYPE == "memory":
            from telecloud.repositories.memory_repo import InMemoryRepository
            _db_repository = InMemoryRepository()
        else:
            raise ValueError(f"Bilinmeyen DEPLOYMENT_TYPE: {DEPLOYMENT_TYPE}")
    return _db_repository


# --- Blob Deposu (Telegram) Bağımlılığı ---
_blob_relay = None


def get_blob_relay() -> BaseBlobRelay:
    """Telegram adaptörünü tek sefer oluşturup paylaşır."""
    global _blob_relay
    if _blob_relay is None:
        _blob_relay = TelegramRelay()
    return _blob_relay


# --- Kimlik Kapısı ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


def get_current_owner(
    token: str = Depends(oauth2_scheme),
    db: BaseRepository = Depends(get_db_repository)
) -> OwnerInDB:
    token_data: TokenData = decode_access_token(token)
    owner = db.get_owner_by_email(email=token_data.email)
    # Hesap silinmişse token süresi dolmamış olsa da geçersizdir
    if owner is None:
        raise Unauthenticated()
    if not owner.is_active:
        raise Unauthorized("Hesabınız devre dışı bırakılmış.")
    return owner


def get_current_admin(
    current_owner: OwnerInDB = Depends(get_current_owner)
) -> OwnerInDB:
    """Rol token'dan değil, kayıttan okunur; admin olmayan 403 alır."""
    if current_owner.role != "admin":
        raise Unauthorized("Bu işlemi yapmak için yetkiniz yok.")
    return current_owner
