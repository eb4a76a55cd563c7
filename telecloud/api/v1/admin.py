# backend/telecloud/api/v1/admin.py
# Sadece "admin" rolündeki kullanıcılar erişebilir.

from fastapi import APIRouter, Depends, Query
from typing import Dict, Optional

from telecloud.dependencies import get_blob_relay, get_current_admin, get_db_repository
from telecloud.repositories.base import BaseRepository
from telecloud.schemas.admin import (
    AdminFileListResponse,
    AdminFolderListResponse,
    BulkCountResult,
    BulkFileDelete,
    BulkFileRestore,
    BulkFolderDelete,
    BulkFolderDeleteResult,
    FileSortField,
    FolderSortField,
    PlatformStats,
    SortOrder,
)
from telecloud.schemas.file import StorageUsage
from telecloud.schemas.owner import OwnerInDB
from telecloud.services import admin_service, file_service
from telecloud.storage_adapters.base import BaseBlobRelay

router = APIRouter()


@router.get("/files", response_model=AdminFileListResponse)
def list_all_files(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    search: Optional[str] = Query(None),
    owner_id: Optional[str] = Query(None),
    sort_by: FileSortField = Query(FileSortField.created_at),
    sort_order: SortOrder = Query(SortOrder.desc),
    include_deleted: bool = Query(False),
    admin: OwnerInDB = Depends(get_current_admin),
    db: BaseRepository = Depends(get_db_repository)
):
    """
    (Admin) Tüm kullanıcıların dosyaları, sahip ve klasör bilgisiyle.
    **limit** en fazla 100'dür; **sort_by** sadece izinli alanları kabul eder.
    """
    return admin_service.list_files(
        db,
        page=page,
        limit=limit,
        search=search,
        owner_id=owner_id,
        sort_by=sort_by,
        sort_order=sort_order,
        include_deleted=include_deleted,
    )


@router.delete("/files", response_model=BulkCountResult)
def bulk_delete_files(
    body: BulkFileDelete,
    admin: OwnerInDB = Depends(get_current_admin),
    db: BaseRepository = Depends(get_db_repository),
    relay: BaseBlobRelay = Depends(get_blob_relay)
):
    """(Admin) Toplu silme. permanent=false ise çöpe taşır."""
    return admin_service.bulk_delete_files(body.file_ids, body.permanent, db, relay)


@router.patch("/files", response_model=BulkCountResult)
def bulk_restore_files(
    body: BulkFileRestore,
    admin: OwnerInDB = Depends(get_current_admin),
    db: BaseRepository = Depends(get_db_repository)
):
    """(Admin) Çöpteki dosyaları toplu geri yükler."""
    return admin_service.bulk_restore_files(body.file_ids, db)


@router.get("/folders", response_model=AdminFolderListResponse)
def list_all_folders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    search: Optional[str] = Query(None),
    owner_id: Optional[str] = Query(None),
    sort_by: FolderSortField = Query(FolderSortField.created_at),
    sort_order: SortOrder = Query(SortOrder.desc),
    admin: OwnerInDB = Depends(get_current_admin),
    db: BaseRepository = Depends(get_db_repository)
):
    return admin_service.list_folders(
        db,
        page=page,
        limit=limit,
        search=search,
        owner_id=owner_id,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.delete("/folders", response_model=BulkFolderDeleteResult)
def bulk_delete_folders(
    body: BulkFolderDelete,
    admin: OwnerInDB = Depends(get_current_admin),
    db: BaseRepository = Depends(get_db_repository),
    relay: BaseBlobRelay = Depends(get_blob_relay)
):
    """(Admin) Klasörleri toplu siler. recursive=false ise sadece boş klasörler silinir."""
    return admin_service.bulk_delete_folders(body.folder_ids, body.recursive, db, relay)


@router.get("/stats", response_model=PlatformStats)
def get_stats(
    admin: OwnerInDB = Depends(get_current_admin),
    db: BaseRepository = Depends(get_db_repository)
):
    return admin_service.get_platform_stats(db)


@router.post("/owners/{owner_id}/resync", response_model=StorageUsage)
def resync_owner(
    owner_id: str,
    admin: OwnerInDB = Depends(get_current_admin),
    db: BaseRepository = Depends(get_db_repository)
):
    """(Admin) Bir kullanıcının kullanım sayaçlarını yeniden hesaplar."""
    return file_service.resync_owner_usage(owner_id, db)


@router.get("/relay/health", response_model=Dict[str, bool])
def relay_health(
    admin: OwnerInDB = Depends(get_current_admin),
    relay: BaseBlobRelay = Depends(get_blob_relay)
):
    """(Admin) Telegram bot token'ı ve sohbet erişimi çalışıyor mu?"""
    return relay.health()
