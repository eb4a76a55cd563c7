# backend/telecloud/schemas/folder.py

from __future__ import annotations
from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime


class FolderBase(BaseModel):
    name: str
    parent_id: Optional[str] = None


class FolderCreate(FolderBase):
    pass


class FolderUpdate(BaseModel):
    """
    Yeniden adlandırma ve/veya taşıma.
    'parent_id' gönderilmezse konum değişmez; açıkça null gönderilirse kök dizine taşınır.
    (Ayrım model_fields_set ile yapılır.)
    """
    name: Optional[str] = None
    parent_id: Optional[str] = None


class FolderOut(FolderBase):
    id: str
    owner_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class FolderPathItem(BaseModel):
    id: str
    name: str


class FolderPath(BaseModel):
    """Kökten klasöre kadar olan ata zinciri (breadcrumb) ve '/A/B/C' yolu."""
    folder_id: str
    items: List[FolderPathItem]
    path: str


class FolderTreeNode(BaseModel):
    id: str
    name: str
    parent_id: Optional[str] = None
    children: List[FolderTreeNode] = []


class FolderContents(BaseModel):
    folder_id: str
    total_folders: int
    total_files: int


class FolderStats(BaseModel):
    folder_id: str
    file_count: int
    total_size: int
    formatted_size: str
    subfolder_count: int
    last_modified: Optional[datetime] = None


class FolderDeleteResult(BaseModel):
    folders_deleted: int = 0
    files_deleted: int = 0
    errors: List[str] = []

    def merge(self, other: "FolderDeleteResult") -> None:
        self.folders_deleted += other.folders_deleted
        self.files_deleted += other.files_deleted
        self.errors.extend(other.errors)
