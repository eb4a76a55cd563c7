# backend/telecloud/api/v1/account.py

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from telecloud.core.config import RATE_LIMIT_ENABLED
from telecloud.dependencies import get_blob_relay, get_current_owner, get_db_repository
from telecloud.repositories.base import BaseRepository
from telecloud.schemas.owner import (
    AccountDeletionResult,
    ConfirmDeletionRequest,
    DeletionCodeIssued,
    OwnerInDB,
)
from telecloud.services import account_service
from telecloud.storage_adapters.base import BaseBlobRelay

limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

router = APIRouter()


@router.post("/deletion-code", response_model=DeletionCodeIssued)
@limiter.limit("5/hour")
def request_deletion_code(
    request: Request,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    """Hesap silme için 10 dakika geçerli 6 haneli bir kod üretir."""
    return account_service.issue_deletion_code(current_owner, db)


@router.post("/confirm-deletion", response_model=AccountDeletionResult)
@limiter.limit("5/hour")
def confirm_deletion(
    request: Request,
    body: ConfirmDeletionRequest,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository),
    relay: BaseBlobRelay = Depends(get_blob_relay)
):
    """
    Kod doğruysa hesabı ve tüm dosya/klasörleri tek transaction'da siler.
    """
    return account_service.confirm_account_deletion(current_owner, body.code, db, relay)
