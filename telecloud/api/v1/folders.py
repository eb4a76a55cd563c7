# backend/telecloud/api/v1/folders.py

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from telecloud.dependencies import get_blob_relay, get_current_owner, get_db_repository
from telecloud.repositories.base import BaseRepository
from telecloud.schemas.common import parse_location_param
from telecloud.schemas.folder import (
    FolderContents,
    FolderCreate,
    FolderDeleteResult,
    FolderOut,
    FolderPath,
    FolderStats,
    FolderTreeNode,
    FolderUpdate,
)
from telecloud.schemas.owner import OwnerInDB
from telecloud.services import folder_service
from telecloud.storage_adapters.base import BaseBlobRelay

router = APIRouter()


@router.post("/", response_model=FolderOut, status_code=201)
def create_folder(
    folder_data: FolderCreate,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    """
    Giriş yapmış kullanıcı için yeni bir klasör oluşturur.

    - **name**: Klasör adı (zorunlu, 1-100 karakter)
    - **parent_id**: (Opsiyonel) Üst klasörün ID'si. Gönderilmezse kök dizine oluşturulur.
    """
    return folder_service.create_new_folder(folder_data, current_owner, db)


@router.get("/", response_model=List[FolderOut])
def list_folders(
    parent_id: Optional[str] = Query(None),
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    """
    Giriş yapmış kullanıcının klasörlerini isme göre sıralı listeler.

    - **parent_id** gönderilmezse TÜM klasörleri getirir.
    - **parent_id=null** kök dizindeki klasörleri getirir.
    - **parent_id=<id>** o klasörün doğrudan alt klasörlerini getirir.
    """
    return folder_service.get_folders_by_owner(current_owner, db, parent_id=parse_location_param(parent_id))


@router.get("/tree", response_model=List[FolderTreeNode])
def get_folder_tree(
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    return folder_service.get_folder_tree(current_owner, db)


@router.patch("/{folder_id}", response_model=FolderOut)
def update_folder(
    folder_id: str,
    update: FolderUpdate,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    """Klasörü yeniden adlandırır ve/veya taşır (parent_id: null -> kök dizin)."""
    return folder_service.update_folder(current_owner, folder_id, update, db)


@router.delete("/{folder_id}", response_model=FolderDeleteResult)
def delete_folder(
    folder_id: str,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository),
    relay: BaseBlobRelay = Depends(get_blob_relay)
):
    """
    Bir klasörü ve içindeki tüm içeriği (çöptekiler dahil) kalıcı olarak siler.
    """
    return folder_service.delete_folder_service(current_owner, folder_id, db, relay)


@router.get("/{folder_id}/contents", response_model=FolderContents)
def get_folder_contents(
    folder_id: str,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    """Alt klasörler dahil toplam klasör ve canlı dosya sayısı."""
    return folder_service.get_folder_contents(current_owner, folder_id, db)


@router.get("/{folder_id}/stats", response_model=FolderStats)
def get_folder_stats(
    folder_id: str,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    return folder_service.get_folder_stats(current_owner, folder_id, db)


@router.get("/{folder_id}/path", response_model=FolderPath)
def get_folder_path(
    folder_id: str,
    current_owner: OwnerInDB = Depends(get_current_owner),
    db: BaseRepository = Depends(get_db_repository)
):
    return folder_service.get_folder_path(current_owner, folder_id, db)
