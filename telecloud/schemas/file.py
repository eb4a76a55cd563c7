# backend/telecloud/schemas/file.py

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from telecloud.core.file_rules import format_file_size, split_extension
from telecloud.schemas.common import Pagination


class FileBase(BaseModel):
    name: str
    folder_id: Optional[str] = None # Kök dizindeki dosyalar için null
    mime_type: str
    size: int


class FileCreate(FileBase):
    """Dosya oluşturma (iç) modeli."""
    owner_id: str
    blob_handle: str  # Telegram file_id
    blob_message_id: Optional[int] = None  # Kalıcı silmede mesajı kaldırmak için
    created_at: datetime
    deleted_at: Optional[datetime] = None


class FileOut(FileCreate):
    """API'den kullanıcıya döndürülecek dosya modeli."""
    id: str # Firestore Document ID
    formatted_size: Optional[str] = None
    extension: Optional[str] = None

    class Config:
        from_attributes = True

    def model_post_init(self, __context):
        """Sunum alanlarını ham değerlerden türet."""
        self.formatted_size = format_file_size(self.size)
        self.extension = split_extension(self.name)[1].lstrip(".").lower() or None

    @property
    def is_live(self) -> bool:
        return self.deleted_at is None


class FileUpdate(BaseModel):
    """
    Dosya yeniden adlandırma ve/veya taşıma isteği.
    'folder_id' açıkça null gönderilirse Kök Dizin'e taşır.
    """
    name: Optional[str] = None
    folder_id: Optional[str] = None


class FileListResponse(BaseModel):
    items: List[FileOut]
    pagination: Pagination


class StorageUsage(BaseModel):
    total_size: int
    total_files: int
    formatted_size: str


class DuplicateGroup(BaseModel):
    name: str
    size: int
    files: List[FileOut]


class BulkDownloadRequest(BaseModel):
    file_ids: List[str] = Field(..., min_length=1)
