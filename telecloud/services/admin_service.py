# backend/telecloud/services/admin_service.py
# Admin paneli: toplu işlemler, sahip bilgisiyle birleştirilmiş listeler, istatistikler.

import logging
from typing import List, Optional

from telecloud.core.exceptions import Conflict
from telecloud.core.file_rules import format_file_size
from telecloud.repositories.base import BaseRepository, sort_key
from telecloud.schemas.admin import (
    AdminFileItem,
    AdminFileListResponse,
    AdminFolderItem,
    AdminFolderListResponse,
    BulkCountResult,
    BulkFolderDeleteResult,
    FileSortField,
    FolderSortField,
    MimeTypeStat,
    PlatformStats,
    SortOrder,
)
from telecloud.schemas.common import Pagination
from telecloud.schemas.folder import FolderDeleteResult
from telecloud.services import file_service, folder_service
from telecloud.storage_adapters.base import BaseBlobRelay

logger = logging.getLogger(__name__)


def list_files(
    db: BaseRepository,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    owner_id: Optional[str] = None,
    sort_by: FileSortField = FileSortField.created_at,
    sort_order: SortOrder = SortOrder.desc,
    include_deleted: bool = False,
) -> AdminFileListResponse:
    """Tüm kullanıcıların dosyaları; her satır sahibi ve klasör adıyla birleştirilir."""
    page, limit = file_service.clamp_paging(page, limit)
    items, total = db.find_files(
        owner_id=owner_id,
        include_deleted=include_deleted,
        search=(search or "").strip() or None,
        sort_by=FileSortField(sort_by).value,
        descending=SortOrder(sort_order) == SortOrder.desc,
        offset=(page - 1) * limit,
        limit=limit,
    )

    owners = db.get_owners_by_ids([f.owner_id for f in items])
    folders = db.get_folders_by_ids([f.folder_id for f in items if f.folder_id])
    result = []
    for record in items:
        owner = owners.get(record.owner_id)
        folder = folders.get(record.folder_id) if record.folder_id else None
        result.append(AdminFileItem(
            **record.model_dump(),
            owner_name=owner.name if owner else None,
            owner_email=owner.email if owner else None,
            folder_name=folder.name if folder else None,
        ))
    return AdminFileListResponse(items=result, pagination=Pagination.build(page, limit, total))


def list_folders(
    db: BaseRepository,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    owner_id: Optional[str] = None,
    sort_by: FolderSortField = FolderSortField.created_at,
    sort_order: SortOrder = SortOrder.desc,
) -> AdminFolderListResponse:
    """
    Tüm klasörler; arama klasör adı, sahip adı ve sahip emaili üzerinde
    büyük/küçük harf duyarsız yapılır.
    """
    page, limit = file_service.clamp_paging(page, limit)
    folders = db.list_all_folders(owner_id=owner_id)
    owners = db.get_owners_by_ids([f.owner_id for f in folders])

    needle = (search or "").strip().lower()
    if needle:
        def matches(folder):
            owner = owners.get(folder.owner_id)
            haystack = [folder.name, owner.name if owner else None, owner.email if owner else None]
            return any(needle in value.lower() for value in haystack if value)
        folders = [f for f in folders if matches(f)]

    field = FolderSortField(sort_by).value
    folders.sort(key=lambda f: sort_key(getattr(f, field)), reverse=SortOrder(sort_order) == SortOrder.desc)

    total = len(folders)
    page_items = folders[(page - 1) * limit:page * limit]
    parents = db.get_folders_by_ids([f.parent_id for f in page_items if f.parent_id])

    items = []
    for folder in page_items:
        owner = owners.get(folder.owner_id)
        parent = parents.get(folder.parent_id) if folder.parent_id else None
        file_count = len(db.get_files_by_folder(folder.id, include_deleted=False))
        subfolder_count = len(db.list_folders(folder.owner_id, parent_id=folder.id))
        items.append(AdminFolderItem(
            **folder.model_dump(),
            owner_name=owner.name if owner else None,
            owner_email=owner.email if owner else None,
            parent_name=parent.name if parent else None,
            is_root_folder=folder.parent_id is None,
            file_count=file_count,
            subfolder_count=subfolder_count,
            total_items=file_count + subfolder_count,
        ))
    return AdminFolderListResponse(items=items, pagination=Pagination.build(page, limit, total))


def bulk_delete_files(
    file_ids: List[str],
    permanent: bool,
    db: BaseRepository,
    relay: Optional[BaseBlobRelay] = None,
) -> BulkCountResult:
    """
    permanent=True -> kayıtlar kalıcı silinir (Telegram mesajı best-effort kaldırılır)
    permanent=False -> sadece canlı dosyalar çöpe taşınır
    Tek bir dosyadaki hata toplu işlemi durdurmaz, 'errors' listesine yazılır.
    """
    count = 0
    errors: List[str] = []
    records = db.get_files_by_ids(file_ids)
    for file_id in dict.fromkeys(file_ids):
        record = records.get(file_id)
        if record is None:
            continue
        try:
            if permanent:
                if file_service.purge_file(record, db, relay):
                    count += 1
            elif record.deleted_at is None:
                db.set_file_deleted_at(file_id, file_service.utc_now())
                count += 1
        except Exception as e:
            logger.error("Admin dosya silme hatası (%s): %s", file_id, e)
            errors.append(f"Dosya silinemedi: {record.name} ({file_id}): {e}")

    action = "kalıcı olarak silindi" if permanent else "çöpe taşındı"
    logger.info("Admin toplu dosya silme: %d dosya %s, %d hata", count, action, len(errors))
    return BulkCountResult(message=f"{count} dosya {action}.", count=count, errors=errors)


def bulk_restore_files(file_ids: List[str], db: BaseRepository) -> BulkCountResult:
    """
    Sadece silinmiş dosyalar geri yüklenir; canlı olanlar sayılmaz.
    İsim çakışması veya depo hatası 'errors' listesine yazılır.
    """
    count = 0
    errors: List[str] = []
    records = db.get_files_by_ids(file_ids)
    for file_id in dict.fromkeys(file_ids):
        record = records.get(file_id)
        if record is None or record.deleted_at is None:
            continue
        try:
            db.set_file_deleted_at(file_id, None)
            count += 1
        except Conflict as e:
            errors.append(f"Dosya geri yüklenemedi: {record.name} ({file_id}): {e.message}")
        except Exception as e:
            logger.error("Admin dosya geri yükleme hatası (%s): %s", file_id, e)
            errors.append(f"Dosya geri yüklenemedi: {record.name} ({file_id}): {e}")
    return BulkCountResult(message=f"{count} dosya geri yüklendi.", count=count, errors=errors)


def bulk_delete_folders(
    folder_ids: List[str],
    recursive: bool,
    db: BaseRepository,
    relay: Optional[BaseBlobRelay] = None,
) -> BulkFolderDeleteResult:
    """
    recursive=True  -> her klasör için alt ağaç silme, sonuçlar toplanır
    recursive=False -> sadece boş klasörler silinir (0 canlı dosya, 0 alt klasör)
    """
    total = FolderDeleteResult()
    for folder_id in dict.fromkeys(folder_ids):
        try:
            folder = db.get_folder(folder_id)
            if folder is None:
                total.errors.append(f"Klasör bulunamadı: {folder_id}")
                continue

            if not recursive:
                contents = folder_service.count_contents(folder_id, db)
                if contents.total_files or contents.total_folders:
                    total.errors.append(
                        f"'{folder.name}' klasörü boş değil "
                        f"({contents.total_files} dosya, {contents.total_folders} alt klasör)."
                    )
                    continue
            # Boş klasörde de çöpteki dosyalar klasörle birlikte gider
            total.merge(folder_service.delete_folder_recursive(folder_id, db, relay))
        except Exception as e:
            logger.error("Admin klasör silme hatası (%s): %s", folder_id, e)
            total.errors.append(f"Klasör silinemedi: {folder_id}: {e}")

    return BulkFolderDeleteResult(
        message=f"{total.folders_deleted} klasör ve {total.files_deleted} dosya silindi.",
        folders_deleted=total.folders_deleted,
        files_deleted=total.files_deleted,
        errors=total.errors,
    )


def get_platform_stats(db: BaseRepository) -> PlatformStats:
    stats = db.platform_stats()
    return PlatformStats(
        total_owners=stats["total_owners"],
        active_owners=stats["active_owners"],
        admin_owners=stats["admin_owners"],
        total_files=stats["total_files"],
        deleted_files=stats["deleted_files"],
        total_folders=stats["total_folders"],
        total_storage=stats["total_storage"],
        formatted_storage=format_file_size(stats["total_storage"]),
        mime_types={k: MimeTypeStat(**v) for k, v in stats["mime_types"].items()},
    )
