# backend/telecloud/repositories/memory_repo.py
# DEPLOYMENT_TYPE = "memory" için süreç içi depo (lokal geliştirme ve testler).
# Firestore deposuyla aynı benzersizlik ve sıralama kurallarını uygular.

import threading
import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Tuple

from telecloud.core.exceptions import Conflict, NotFound
from telecloud.repositories.base import BaseRepository, LocationFilter, sort_key
from telecloud.schemas.common import UNSET
from telecloud.schemas.file import FileCreate, FileOut
from telecloud.schemas.folder import FolderOut
from telecloud.schemas.owner import OwnerCreate, OwnerInDB, VerificationCode


class InMemoryRepository(BaseRepository):
    def __init__(self):
        self._lock = threading.RLock()
        self.owners: Dict[str, OwnerInDB] = {}
        self.folders: Dict[str, FolderOut] = {}
        self.files: Dict[str, FileOut] = {}
        self.codes: Dict[str, VerificationCode] = {}
        # Aynı created_at değerine sahip kayıtlarda ekleme sırası belirleyici olsun
        self._file_seq: Dict[str, int] = {}
        self._seq = 0

    @staticmethod
    def _new_id() -> str:
        return uuid.uuid4().hex

    # ------------------ OWNERS ------------------
    def get_owner_by_email(self, email: str) -> Optional[OwnerInDB]:
        email = email.lower()
        with self._lock:
            for owner in self.owners.values():
                if owner.email == email:
                    return owner.model_copy()
        return None

    def get_owner_by_id(self, owner_id: str) -> Optional[OwnerInDB]:
        owner = self.owners.get(owner_id)
        return owner.model_copy() if owner else None

    def create_owner(self, owner_create: OwnerCreate, hashed_password: str, role: str = "user") -> OwnerInDB:
        with self._lock:
            if any(o.email == owner_create.email for o in self.owners.values()):
                raise Conflict("Bu email adresi zaten kayıtlı.")
            owner = OwnerInDB(
                id=self._new_id(),
                email=owner_create.email,
                name=owner_create.name,
                role=role,
                hashed_password=hashed_password,
                created_at=datetime.now(timezone.utc),
            )
            self.owners[owner.id] = owner
            return owner.model_copy()

    def get_owners_by_ids(self, owner_ids: List[str]) -> Dict[str, OwnerInDB]:
        return {oid: self.owners[oid].model_copy() for oid in set(owner_ids) if oid in self.owners}

    def list_owners(self) -> List[OwnerInDB]:
        with self._lock:
            return [o.model_copy() for o in self.owners.values()]

    def update_owner_usage(self, owner_id: str, total_files: int, total_size: int) -> None:
        with self._lock:
            owner = self.owners.get(owner_id)
            if owner is None:
                raise NotFound("Kullanıcı bulunamadı.")
            owner.total_files_uploaded = total_files
            owner.total_storage_used = total_size

    # ------------------ FOLDERS ------------------
    def _sibling_name_taken(self, owner_id: str, parent_id: Optional[str], name: str, exclude_id: Optional[str] = None) -> bool:
        return any(
            f.owner_id == owner_id and f.parent_id == parent_id and f.name == name and f.id != exclude_id
            for f in self.folders.values()
        )

    def create_folder(self, name: str, parent_id: Optional[str], owner_id: str) -> FolderOut:
        with self._lock:
            if self._sibling_name_taken(owner_id, parent_id, name):
                raise Conflict(f"Bu konumda '{name}' adında bir klasör zaten mevcut.")
            folder = FolderOut(
                id=self._new_id(),
                name=name,
                parent_id=parent_id,
                owner_id=owner_id,
                created_at=datetime.now(timezone.utc),
            )
            self.folders[folder.id] = folder
            return folder.model_copy()

    def get_folder(self, folder_id: str) -> Optional[FolderOut]:
        folder = self.folders.get(folder_id)
        return folder.model_copy() if folder else None

    def get_folders_by_ids(self, folder_ids: List[str]) -> Dict[str, FolderOut]:
        return {fid: self.folders[fid].model_copy() for fid in set(folder_ids) if fid in self.folders}

    def update_folder(self, folder_id: str, name: str, parent_id: Optional[str]) -> FolderOut:
        with self._lock:
            folder = self.folders.get(folder_id)
            if folder is None:
                raise NotFound("Klasör bulunamadı.")
            if self._sibling_name_taken(folder.owner_id, parent_id, name, exclude_id=folder_id):
                raise Conflict(f"Bu konumda '{name}' adında bir klasör zaten mevcut.")
            folder.name = name
            folder.parent_id = parent_id
            return folder.model_copy()

    def list_folders(self, owner_id: str, parent_id: LocationFilter = UNSET) -> List[FolderOut]:
        with self._lock:
            folders = [
                f.model_copy() for f in self.folders.values()
                if f.owner_id == owner_id and (parent_id is UNSET or f.parent_id == parent_id)
            ]
        return sorted(folders, key=lambda f: f.name)

    def list_all_folders(self, owner_id: Optional[str] = None) -> List[FolderOut]:
        with self._lock:
            return [
                f.model_copy() for f in self.folders.values()
                if owner_id is None or f.owner_id == owner_id
            ]

    def delete_folder(self, folder_id: str) -> bool:
        with self._lock:
            return self.folders.pop(folder_id, None) is not None

    # ------------------ FILES ------------------
    def _live_name_taken(self, owner_id: str, folder_id: Optional[str], name: str, exclude_id: Optional[str] = None) -> bool:
        lowered = name.lower()
        return any(
            f.owner_id == owner_id and f.folder_id == folder_id and f.deleted_at is None
            and f.name.lower() == lowered and f.id != exclude_id
            for f in self.files.values()
        )

    def create_file_record(self, file_data: FileCreate) -> FileOut:
        with self._lock:
            if any(f.blob_handle == file_data.blob_handle for f in self.files.values()):
                raise Conflict("Bu blob handle başka bir dosyaya ait.")
            if file_data.deleted_at is None and self._live_name_taken(file_data.owner_id, file_data.folder_id, file_data.name):
                raise Conflict(f"Bu konumda '{file_data.name}' adında bir dosya zaten mevcut.")
            record = FileOut(id=self._new_id(), **file_data.model_dump())
            self.files[record.id] = record
            self._seq += 1
            self._file_seq[record.id] = self._seq
            return record.model_copy()

    def get_file(self, file_id: str) -> Optional[FileOut]:
        record = self.files.get(file_id)
        return record.model_copy() if record else None

    def get_files_by_ids(self, file_ids: List[str]) -> Dict[str, FileOut]:
        return {fid: self.files[fid].model_copy() for fid in set(file_ids) if fid in self.files}

    def live_file_name_exists(self, owner_id: str, folder_id: Optional[str], name: str) -> bool:
        with self._lock:
            return self._live_name_taken(owner_id, folder_id, name)

    def update_file(self, file_id: str, name: str, folder_id: Optional[str]) -> FileOut:
        with self._lock:
            record = self.files.get(file_id)
            if record is None:
                raise NotFound("Dosya bulunamadı.")
            if record.deleted_at is None and self._live_name_taken(record.owner_id, folder_id, name, exclude_id=file_id):
                raise Conflict(f"Bu konumda '{name}' adında bir dosya zaten mevcut.")
            updated = record.model_copy(update={"name": name, "folder_id": folder_id})
            updated.model_post_init(None)
            self.files[file_id] = updated
            return updated.model_copy()

    def set_file_deleted_at(self, file_id: str, deleted_at: Optional[datetime]) -> FileOut:
        with self._lock:
            record = self.files.get(file_id)
            if record is None:
                raise NotFound("Dosya bulunamadı.")
            if deleted_at is None and self._live_name_taken(record.owner_id, record.folder_id, record.name, exclude_id=file_id):
                raise Conflict(f"Bu konumda '{record.name}' adında canlı bir dosya var, geri yüklenemez.")
            record.deleted_at = deleted_at
            return record.model_copy()

    def delete_file_record(self, file_id: str) -> bool:
        with self._lock:
            self._file_seq.pop(file_id, None)
            return self.files.pop(file_id, None) is not None

    def get_files_by_folder(self, folder_id: str, include_deleted: bool = True) -> List[FileOut]:
        with self._lock:
            return [
                f.model_copy() for f in self.files.values()
                if f.folder_id == folder_id and (include_deleted or f.deleted_at is None)
            ]

    def find_files(
        self,
        owner_id: Optional[str],
        folder_id: LocationFilter = UNSET,
        include_deleted: bool = False,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        descending: bool = True,
        offset: int = 0,
        limit: int = 50,
    ) -> Tuple[List[FileOut], int]:
        needle = search.lower() if search else None
        with self._lock:
            matches = [
                f for f in self.files.values()
                if (owner_id is None or f.owner_id == owner_id)
                and (folder_id is UNSET or f.folder_id == folder_id)
                and (include_deleted or f.deleted_at is None)
                and (needle is None or needle in f.name.lower())
            ]
            matches.sort(
                key=lambda f: (sort_key(getattr(f, sort_by)), self._file_seq.get(f.id, 0)),
                reverse=descending,
            )
            page = [f.model_copy() for f in matches[offset:offset + limit]]
        return page, len(matches)

    def get_storage_usage(self, owner_id: str) -> Tuple[int, int]:
        with self._lock:
            live = [f for f in self.files.values() if f.owner_id == owner_id and f.deleted_at is None]
        return sum(f.size for f in live), len(live)

    def list_live_files(self, owner_id: str) -> List[FileOut]:
        with self._lock:
            return [f.model_copy() for f in self.files.values() if f.owner_id == owner_id and f.deleted_at is None]

    def platform_stats(self) -> Dict[str, Any]:
        with self._lock:
            owners = list(self.owners.values())
            files = list(self.files.values())
            folder_count = len(self.folders)
        live = [f for f in files if f.deleted_at is None]
        mime_types: Dict[str, Dict[str, int]] = {}
        for f in live:
            bucket = mime_types.setdefault(f.mime_type.split("/")[0], {"count": 0, "total_size": 0})
            bucket["count"] += 1
            bucket["total_size"] += f.size
        return {
            "total_owners": len(owners),
            "active_owners": sum(1 for o in owners if o.is_active),
            "admin_owners": sum(1 for o in owners if o.role == "admin"),
            "total_files": len(live),
            "deleted_files": len(files) - len(live),
            "total_folders": folder_count,
            "total_storage": sum(f.size for f in live),
            "mime_types": mime_types,
        }

    # ------------------ VERIFICATION CODES ------------------
    def create_verification_code(self, email: str, code: str, code_type: str, expires_at: datetime) -> VerificationCode:
        with self._lock:
            for existing in self.codes.values():
                if existing.email == email and existing.type == code_type and not existing.used:
                    existing.used = True
            record = VerificationCode(
                id=self._new_id(), email=email, code=code, type=code_type, expires_at=expires_at
            )
            self.codes[record.id] = record
            return record.model_copy()

    def find_valid_code(self, email: str, code: str, code_type: str, now: datetime) -> Optional[VerificationCode]:
        with self._lock:
            for record in self.codes.values():
                if record.email == email and record.code == code and record.type == code_type and record.is_valid(now):
                    return record.model_copy()
        return None

    # ------------------ ACCOUNT CASCADE ------------------
    def delete_owner_cascade(self, owner_id: str) -> Dict[str, Any]:
        with self._lock:
            owner = self.owners.get(owner_id)
            if owner is None:
                raise NotFound("Kullanıcı bulunamadı.")
            file_ids = [f.id for f in self.files.values() if f.owner_id == owner_id]
            folder_ids = [f.id for f in self.folders.values() if f.owner_id == owner_id]
            code_ids = [c.id for c in self.codes.values() if c.email == owner.email]
            message_ids = [
                self.files[fid].blob_message_id for fid in file_ids
                if self.files[fid].blob_message_id is not None
            ]
            # Kilit altında ve hata üretebilecek adım kalmadı: hepsi ya da hiçbiri
            for fid in file_ids:
                self.files.pop(fid)
                self._file_seq.pop(fid, None)
            for fid in folder_ids:
                self.folders.pop(fid)
            for cid in code_ids:
                self.codes.pop(cid)
            self.owners.pop(owner_id)
        return {
            "files_deleted": len(file_ids),
            "folders_deleted": len(folder_ids),
            "codes_deleted": len(code_ids),
            "released_message_ids": message_ids,
        }
