# backend/telecloud/schemas/admin.py

from enum import Enum
from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional

from telecloud.schemas.common import Pagination
from telecloud.schemas.file import FileOut
from telecloud.schemas.folder import FolderOut


# İstemciden gelen sıralama anahtarları asla doğrudan sorguya aktarılmaz,
# sadece bu listelerdeki değerler kabul edilir.
class FileSortField(str, Enum):
    created_at = "created_at"
    name = "name"
    size = "size"
    mime_type = "mime_type"
    deleted_at = "deleted_at"


class FolderSortField(str, Enum):
    created_at = "created_at"
    name = "name"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class AdminFileItem(FileOut):
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    folder_name: Optional[str] = None


class AdminFolderItem(FolderOut):
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    parent_name: Optional[str] = None
    is_root_folder: bool
    file_count: int
    subfolder_count: int
    total_items: int


class AdminFileListResponse(BaseModel):
    items: List[AdminFileItem]
    pagination: Pagination


class AdminFolderListResponse(BaseModel):
    items: List[AdminFolderItem]
    pagination: Pagination


class BulkFileDelete(BaseModel):
    file_ids: List[str] = Field(..., min_length=1)
    permanent: bool = False


class BulkFileRestore(BaseModel):
    file_ids: List[str] = Field(..., min_length=1)
    action: Literal["restore"] = "restore"


class BulkFolderDelete(BaseModel):
    folder_ids: List[str] = Field(..., min_length=1)
    recursive: bool = False


class BulkCountResult(BaseModel):
    message: str
    count: int
    errors: List[str] = []


class BulkFolderDeleteResult(BaseModel):
    message: str
    folders_deleted: int
    files_deleted: int
    errors: List[str] = []


class MimeTypeStat(BaseModel):
    count: int
    total_size: int


class PlatformStats(BaseModel):
    total_owners: int
    active_owners: int
    admin_owners: int
    total_files: int
    deleted_files: int
    total_folders: int
    total_storage: int
    formatted_storage: str
    mime_types: Dict[str, MimeTypeStat]
