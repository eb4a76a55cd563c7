# backend/telecloud/services/folder_service.py

import logging
from typing import Dict, List, Optional

from telecloud.core.config import MAX_FOLDER_DEPTH
from telecloud.core.exceptions import InternalError, InvalidArgument, NotFound
from telecloud.core.file_rules import format_file_size, validate_folder_name
from telecloud.repositories.base import BaseRepository, LocationFilter
from telecloud.schemas.common import UNSET
from telecloud.schemas.folder import (
    FolderContents,
    FolderCreate,
    FolderDeleteResult,
    FolderOut,
    FolderPath,
    FolderPathItem,
    FolderStats,
    FolderTreeNode,
    FolderUpdate,
)
from telecloud.schemas.owner import OwnerInDB
from telecloud.services import file_service
from telecloud.storage_adapters.base import BaseBlobRelay

logger = logging.getLogger(__name__)


def get_owned_folder(owner_id: str, folder_id: str, db: BaseRepository) -> FolderOut:
    """Klasör yoksa veya başkasına aitse aynı NotFound hatası döner."""
    folder = db.get_folder(folder_id)
    if folder is None or folder.owner_id != owner_id:
        raise NotFound("Klasör bulunamadı veya erişim yetkiniz yok.")
    return folder


def ensure_no_cycle(folder_id: str, proposed_parent_id: Optional[str], db: BaseRepository) -> None:
    """
    Klasörü 'proposed_parent_id' altına taşımak bir döngü oluşturur mu?
    Önerilen üstten köke doğru yürür; klasörün kendisine veya daha önce
    görülen bir düğüme rastlanırsa InvalidArgument fırlatır.
    """
    if proposed_parent_id is None:
        return
    if proposed_parent_id == folder_id:
        raise InvalidArgument("Döngüsel referans (circular reference): klasör kendi içine taşınamaz.")

    visited = {folder_id, proposed_parent_id}
    current = db.get_folder(proposed_parent_id)
    depth = 0
    while current is not None and current.parent_id is not None:
        depth += 1
        if depth > MAX_FOLDER_DEPTH:
            raise InternalError("Klasör hiyerarşisi izin verilen derinliği aşıyor.")
        if current.parent_id in visited:
            raise InvalidArgument("Döngüsel referans (circular reference): klasör kendi alt klasörüne taşınamaz.")
        visited.add(current.parent_id)
        current = db.get_folder(current.parent_id)


def create_new_folder(folder_data: FolderCreate, owner: OwnerInDB, db: BaseRepository) -> FolderOut:
    """Yeni bir klasör oluşturma iş mantığı."""
    name = validate_folder_name(folder_data.name)
    if folder_data.parent_id is not None:
        get_owned_folder(owner.id, folder_data.parent_id, db)

    # Sibling benzersizliği repository içinde atomik olarak kontrol edilir (Conflict)
    folder = db.create_folder(name=name, parent_id=folder_data.parent_id, owner_id=owner.id)
    logger.info("Klasör oluşturuldu: %s (owner: %s, parent: %s)", folder.id, owner.id, folder.parent_id or "kök")
    return folder


def rename_folder(owner: OwnerInDB, folder_id: str, new_name: str, db: BaseRepository) -> FolderOut:
    folder = get_owned_folder(owner.id, folder_id, db)
    name = validate_folder_name(new_name)
    return db.update_folder(folder_id, name=name, parent_id=folder.parent_id)


def move_folder(owner: OwnerInDB, folder_id: str, new_parent_id: Optional[str], db: BaseRepository) -> FolderOut:
    folder = get_owned_folder(owner.id, folder_id, db)
    if new_parent_id is not None:
        get_owned_folder(owner.id, new_parent_id, db)
    ensure_no_cycle(folder_id, new_parent_id, db)
    return db.update_folder(folder_id, name=folder.name, parent_id=new_parent_id)


def update_folder(owner: OwnerInDB, folder_id: str, update: FolderUpdate, db: BaseRepository) -> FolderOut:
    """
    PATCH isteği: ad ve konum birlikte değişebilir.
    'parent_id' gövdede hiç yoksa konum korunur.
    """
    folder = get_owned_folder(owner.id, folder_id, db)
    name = validate_folder_name(update.name) if update.name is not None else folder.name

    parent_id = folder.parent_id
    if "parent_id" in update.model_fields_set:
        parent_id = update.parent_id
        if parent_id is not None:
            get_owned_folder(owner.id, parent_id, db)
        ensure_no_cycle(folder_id, parent_id, db)

    return db.update_folder(folder_id, name=name, parent_id=parent_id)


def get_folders_by_owner(owner: OwnerInDB, db: BaseRepository, parent_id: LocationFilter = UNSET) -> List[FolderOut]:
    """
    UNSET -> kullanıcının tüm klasörleri
    None  -> kök dizindeki klasörler
    id    -> o klasörün doğrudan alt klasörleri
    """
    if parent_id is not UNSET and parent_id is not None:
        get_owned_folder(owner.id, parent_id, db)
    return db.list_folders(owner.id, parent_id=parent_id)


def _collect_subtree(root_id: str, db: BaseRepository) -> List[FolderOut]:
    """
    Kök dahil alt ağaçtaki tüm klasörleri üstten alta sırayla döndürür.
    Özyineleme yerine kuyruk kullanılır; derinlik sınırı aşılırsa InternalError.
    """
    root = db.get_folder(root_id)
    if root is None:
        return []
    ordered = [root]
    seen = {root_id}
    level = [root]
    depth = 0
    while level:
        depth += 1
        if depth > MAX_FOLDER_DEPTH:
            raise InternalError("Klasör hiyerarşisi izin verilen derinliği aşıyor.")
        next_level = []
        for folder in level:
            for child in db.list_folders(folder.owner_id, parent_id=folder.id):
                if child.id in seen:
                    continue
                seen.add(child.id)
                next_level.append(child)
        ordered.extend(next_level)
        level = next_level
    return ordered


def delete_folder_recursive(
    folder_id: str,
    db: BaseRepository,
    relay: Optional[BaseBlobRelay] = None,
) -> FolderDeleteResult:
    """
    Bir klasörü, içindeki tüm alt klasörleri ve dosyalarıyla (çöptekiler dahil)
    birlikte kalıcı olarak siler. Sıra post-order: önce çocuklar, sonra dosyalar,
    en son klasörün kendisi. Tek bir hata kardeşleri veya üst klasörü durdurmaz;
    hatalar 'errors' listesine eklenir. Zaten silinmiş bir klasör için 0/0 döner.
    """
    result = FolderDeleteResult()
    subtree = _collect_subtree(folder_id, db)

    # Üstten alta toplanan listeyi ters çevirmek post-order sıralama verir
    for folder in reversed(subtree):
        try:
            for file in db.get_files_by_folder(folder.id, include_deleted=True):
                try:
                    if file_service.purge_file(file, db, relay):
                        result.files_deleted += 1
                except Exception as e:
                    logger.error("Dosya silinemedi (%s, klasör %s): %s", file.id, folder.id, e)
                    result.errors.append(f"Dosya silinemedi: {file.name} ({file.id}): {e}")

            if db.delete_folder(folder.id):
                result.folders_deleted += 1
        except Exception as e:
            logger.error("Klasör silinemedi (%s): %s", folder.id, e)
            result.errors.append(f"Klasör silinemedi: {folder.name} ({folder.id}): {e}")

    logger.info(
        "Klasör silme tamamlandı (%s): %d klasör, %d dosya, %d hata",
        folder_id, result.folders_deleted, result.files_deleted, len(result.errors),
    )
    return result


def delete_folder_service(
    owner: OwnerInDB,
    folder_id: str,
    db: BaseRepository,
    relay: Optional[BaseBlobRelay] = None,
) -> FolderDeleteResult:
    get_owned_folder(owner.id, folder_id, db)
    return delete_folder_recursive(folder_id, db, relay)


def count_contents(folder_id: str, db: BaseRepository) -> FolderContents:
    """Alt ağaçtaki (kök hariç) klasör ve canlı dosya sayıları."""
    subtree = _collect_subtree(folder_id, db)
    total_files = sum(len(db.get_files_by_folder(f.id, include_deleted=False)) for f in subtree)
    return FolderContents(
        folder_id=folder_id,
        total_folders=max(len(subtree) - 1, 0),
        total_files=total_files,
    )


def get_folder_contents(owner: OwnerInDB, folder_id: str, db: BaseRepository) -> FolderContents:
    get_owned_folder(owner.id, folder_id, db)
    return count_contents(folder_id, db)


def get_folder_stats(owner: OwnerInDB, folder_id: str, db: BaseRepository) -> FolderStats:
    """Alt ağaç genelinde canlı dosya sayısı/boyutu; alt klasör sayısı sadece doğrudan çocuklar."""
    get_owned_folder(owner.id, folder_id, db)
    subtree = _collect_subtree(folder_id, db)

    file_count = 0
    total_size = 0
    last_modified = None
    for folder in subtree:
        for file in db.get_files_by_folder(folder.id, include_deleted=False):
            file_count += 1
            total_size += file.size
            if last_modified is None or file.created_at > last_modified:
                last_modified = file.created_at

    direct_children = db.list_folders(owner.id, parent_id=folder_id)
    return FolderStats(
        folder_id=folder_id,
        file_count=file_count,
        total_size=total_size,
        formatted_size=format_file_size(total_size),
        subfolder_count=len(direct_children),
        last_modified=last_modified,
    )


def get_folder_path(owner: OwnerInDB, folder_id: str, db: BaseRepository) -> FolderPath:
    """Kökten klasöre kadar breadcrumb listesi ve '/A/B/C' yolu."""
    folder = get_owned_folder(owner.id, folder_id, db)
    items = [FolderPathItem(id=folder.id, name=folder.name)]
    seen = {folder.id}

    current = folder
    while current.parent_id is not None:
        if len(items) > MAX_FOLDER_DEPTH or current.parent_id in seen:
            raise InternalError("Klasör hiyerarşisi bozuk veya çok derin.")
        parent = db.get_folder(current.parent_id)
        if parent is None:
            # Üst klasör silinmiş: mevcut zincirle yetin
            logger.warning("Klasör %s için üst klasör bulunamadı: %s", current.id, current.parent_id)
            break
        seen.add(parent.id)
        items.append(FolderPathItem(id=parent.id, name=parent.name))
        current = parent

    items.reverse()
    return FolderPath(folder_id=folder_id, items=items, path="/" + "/".join(i.name for i in items))


def get_folder_tree(owner: OwnerInDB, db: BaseRepository) -> List[FolderTreeNode]:
    """Düz klasör listesinden iç içe ağaç kurar; kardeşler isme göre sıralıdır."""
    folders = db.list_folders(owner.id, parent_id=UNSET)
    nodes: Dict[str, FolderTreeNode] = {
        f.id: FolderTreeNode(id=f.id, name=f.name, parent_id=f.parent_id) for f in folders
    }

    roots: List[FolderTreeNode] = []
    for folder in folders:
        node = nodes[folder.id]
        parent = nodes.get(folder.parent_id) if folder.parent_id else None
        if parent is not None:
            parent.children.append(node)
        else:
            roots.append(node)
    return roots
