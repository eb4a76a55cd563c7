# backend/telecloud/services/account_service.py
# Hesap kapatma: doğrulama kodu üretimi ve tüm verilerin tek transaction'da silinmesi.

import logging
import secrets
from datetime import timedelta
from typing import Optional

from telecloud.core.config import RELEASE_BLOBS_ON_PURGE, VERIFICATION_CODE_TTL_MINUTES
from telecloud.core.exceptions import InternalError, InvalidArgument, NotFound
from telecloud.repositories.base import BaseRepository
from telecloud.schemas.owner import AccountDeletionResult, DeletionCodeIssued, OwnerInDB
from telecloud.services.file_service import utc_now
from telecloud.storage_adapters.base import BaseBlobRelay

logger = logging.getLogger(__name__)

ACCOUNT_DELETION = "account_deletion"


def generate_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def issue_deletion_code(owner: OwnerInDB, db: BaseRepository) -> DeletionCodeIssued:
    """
    Hesap silme için 6 haneli kod üretir ve saklar.
    Email gönderimi bu servisin kapsamında değil; kod asla loglanmaz.
    """
    expires_at = utc_now() + timedelta(minutes=VERIFICATION_CODE_TTL_MINUTES)
    db.create_verification_code(owner.email, generate_code(), ACCOUNT_DELETION, expires_at)
    logger.info("Hesap silme kodu oluşturuldu (owner: %s)", owner.id)
    return DeletionCodeIssued(
        message="Doğrulama kodu oluşturuldu.",
        expires_at=expires_at,
    )


def delete_account(owner_id: str, db: BaseRepository, relay: Optional[BaseBlobRelay] = None) -> dict:
    """
    Dosyalar -> klasörler -> doğrulama kodları -> owner sırasıyla tek transaction.
    Transaction hatası InternalError olarak yukarı çıkar, hiçbir şey silinmemiş olur.
    """
    try:
        stats = db.delete_owner_cascade(owner_id)
    except NotFound:
        raise
    except Exception as e:
        logger.error("Hesap silme transaction'ı başarısız (owner: %s): %s", owner_id, e)
        raise InternalError("Hesap silinemedi, hiçbir veri değiştirilmedi.")

    # Transaction sonrası: Telegram mesajları best-effort
    if relay is not None and RELEASE_BLOBS_ON_PURGE:
        for message_id in stats.get("released_message_ids", []):
            relay.release(message_id)

    logger.info(
        "Hesap silindi (owner: %s): %d dosya, %d klasör",
        owner_id, stats["files_deleted"], stats["folders_deleted"],
    )
    return stats


def confirm_account_deletion(
    owner: OwnerInDB,
    code: str,
    db: BaseRepository,
    relay: Optional[BaseBlobRelay] = None,
) -> AccountDeletionResult:
    if not code or len(code) != 6 or not code.isdigit():
        raise InvalidArgument("Doğrulama kodu 6 haneli olmalıdır.")

    if db.find_valid_code(owner.email, code, ACCOUNT_DELETION, utc_now()) is None:
        raise InvalidArgument("Doğrulama kodu geçersiz veya süresi dolmuş.")

    stats = delete_account(owner.id, db, relay)
    return AccountDeletionResult(
        message="Hesabınız ve tüm verileriniz silindi.",
        files_deleted=stats["files_deleted"],
        folders_deleted=stats["folders_deleted"],
    )
