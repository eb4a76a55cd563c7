# backend/telecloud/repositories/firestore_repo.py

from __future__ import annotations
import hashlib
import logging
from typing import Optional, List, Dict, Any, Tuple
from datetime import datetime, timezone

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath

from telecloud.core.exceptions import Conflict, NotFound
from telecloud.repositories.base import BaseRepository, LocationFilter, sort_key
from telecloud.schemas.common import UNSET
from telecloud.schemas.file import FileCreate, FileOut
from telecloud.schemas.folder import FolderOut
from telecloud.schemas.owner import OwnerCreate, OwnerInDB, VerificationCode

logger = logging.getLogger(__name__)

# Firestore "in" sorgusu en fazla 30 değer kabul eder
IN_QUERY_CHUNK = 30


def _claim_id(*parts: Optional[str]) -> str:
    """Benzersizlik anahtarından geçerli bir doküman ID'si üretir."""
    raw = "\x1f".join(p or "" for p in parts)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _chunks(values: List[str], size: int = IN_QUERY_CHUNK):
    for i in range(0, len(values), size):
        yield values[i:i + size]


class FirestoreRepository(BaseRepository):
    """
    Benzersizlik kuralları 'claim' dokümanlarıyla zorlanır: kayıtla aynı batch
    içinde create() edilir, anahtar doluysa commit AlreadyExists ile düşer.
      - folder_name_claims: (owner_id, parent_id, name)
      - file_name_claims:   (owner_id, folder_id, name.lower())  -- sadece canlı dosyalar
      - blob_handles:       (blob_handle)
    """

    def __init__(self):
        self.db = firestore.Client()
        self.users_collection = self.db.collection("users")
        self.folders_collection = self.db.collection("folders")
        self.files_collection = self.db.collection("files")
        self.codes_collection = self.db.collection("verification_codes")
        self.folder_claims = self.db.collection("folder_name_claims")
        self.file_claims = self.db.collection("file_name_claims")
        self.blob_claims = self.db.collection("blob_handles")

    # --- claim referansları ---
    def _folder_claim(self, owner_id: str, parent_id: Optional[str], name: str):
        return self.folder_claims.document(_claim_id(owner_id, parent_id, name))

    def _file_claim(self, owner_id: str, folder_id: Optional[str], name: str):
        return self.file_claims.document(_claim_id(owner_id, folder_id, name.lower()))

    def _blob_claim(self, blob_handle: str):
        return self.blob_claims.document(_claim_id(blob_handle))

    @staticmethod
    def _count(query) -> int:
        results = query.count(alias="total").get()
        return int(results[0][0].value) if results else 0

    # ------------------ OWNERS ------------------
    @staticmethod
    def _owner_from_doc(doc) -> OwnerInDB:
        data = doc.to_dict() or {}
        data["id"] = doc.id
        return OwnerInDB(**data)

    def get_owner_by_email(self, email: str) -> Optional[OwnerInDB]:
        query = (
            self.users_collection.where(filter=FieldFilter("email", "==", email.lower()))
            .limit(1)
            .stream()
        )
        for doc in query:
            return self._owner_from_doc(doc)
        return None

    def get_owner_by_id(self, owner_id: str) -> Optional[OwnerInDB]:
        doc = self.users_collection.document(owner_id).get()
        if not doc.exists:
            return None
        return self._owner_from_doc(doc)

    def create_owner(self, owner_create: OwnerCreate, hashed_password: str, role: str = "user") -> OwnerInDB:
        owner_data = owner_create.model_dump(exclude={"password"})
        owner_data.update({
            "role": role,
            "is_active": True,
            "hashed_password": hashed_password,
            "total_files_uploaded": 0,
            "total_storage_used": 0,
            "created_at": datetime.now(timezone.utc),
        })
        doc_ref = self.users_collection.document()
        # Email benzersizliği de bir claim dokümanı ile korunur
        claim_ref = self.db.collection("email_claims").document(_claim_id(owner_data["email"]))
        batch = self.db.batch()
        batch.create(claim_ref, {"owner_id": doc_ref.id})
        batch.set(doc_ref, owner_data)
        try:
            batch.commit()
        except gcp_exceptions.AlreadyExists:
            raise Conflict("Bu email adresi zaten kayıtlı.")
        return OwnerInDB(id=doc_ref.id, **owner_data)

    def get_owners_by_ids(self, owner_ids: List[str]) -> Dict[str, OwnerInDB]:
        results: Dict[str, OwnerInDB] = {}
        for chunk in _chunks(list(set(owner_ids))):
            query = self.users_collection.where(filter=FieldFilter(FieldPath.document_id(), "in", chunk))
            for doc in query.stream():
                results[doc.id] = self._owner_from_doc(doc)
        return results

    def list_owners(self) -> List[OwnerInDB]:
        return [self._owner_from_doc(doc) for doc in self.users_collection.stream()]

    def update_owner_usage(self, owner_id: str, total_files: int, total_size: int) -> None:
        try:
            self.users_collection.document(owner_id).update({
                "total_files_uploaded": total_files,
                "total_storage_used": total_size,
            })
        except gcp_exceptions.NotFound:
            raise NotFound("Kullanıcı bulunamadı.")

    # ------------------ FOLDERS ------------------
    @staticmethod
    def _folder_from_doc(doc) -> FolderOut:
        return FolderOut(id=doc.id, **(doc.to_dict() or {}))

    def create_folder(self, name: str, parent_id: Optional[str], owner_id: str) -> FolderOut:
        folder_dict = {
            "name": name,
            "parent_id": parent_id,
            "owner_id": owner_id,
            "created_at": datetime.now(timezone.utc),
        }
        doc_ref = self.folders_collection.document()
        batch = self.db.batch()
        batch.create(self._folder_claim(owner_id, parent_id, name), {"folder_id": doc_ref.id})
        batch.set(doc_ref, folder_dict)
        try:
            batch.commit()
        except gcp_exceptions.AlreadyExists:
            raise Conflict(f"Bu konumda '{name}' adında bir klasör zaten mevcut.")
        return FolderOut(id=doc_ref.id, **folder_dict)

    def get_folder(self, folder_id: str) -> Optional[FolderOut]:
        doc = self.folders_collection.document(folder_id).get()
        if not doc.exists:
            return None
        return self._folder_from_doc(doc)

    def get_folders_by_ids(self, folder_ids: List[str]) -> Dict[str, FolderOut]:
        results: Dict[str, FolderOut] = {}
        for chunk in _chunks(list(set(folder_ids))):
            query = self.folders_collection.where(filter=FieldFilter(FieldPath.document_id(), "in", chunk))
            for doc in query.stream():
                results[doc.id] = self._folder_from_doc(doc)
        return results

    def update_folder(self, folder_id: str, name: str, parent_id: Optional[str]) -> FolderOut:
        current = self.get_folder(folder_id)
        if current is None:
            raise NotFound("Klasör bulunamadı.")
        if current.name == name and current.parent_id == parent_id:
            return current

        doc_ref = self.folders_collection.document(folder_id)
        batch = self.db.batch()
        batch.delete(self._folder_claim(current.owner_id, current.parent_id, current.name))
        batch.create(self._folder_claim(current.owner_id, parent_id, name), {"folder_id": folder_id})
        batch.update(doc_ref, {"name": name, "parent_id": parent_id})
        try:
            batch.commit()
        except gcp_exceptions.AlreadyExists:
            raise Conflict(f"Bu konumda '{name}' adında bir klasör zaten mevcut.")
        return current.model_copy(update={"name": name, "parent_id": parent_id})

    def list_folders(self, owner_id: str, parent_id: LocationFilter = UNSET) -> List[FolderOut]:
        query = self.folders_collection.where(filter=FieldFilter("owner_id", "==", owner_id))
        if parent_id is not UNSET:
            query = query.where(filter=FieldFilter("parent_id", "==", parent_id))
        folders = [self._folder_from_doc(doc) for doc in query.stream()]
        # Firestore sıralaması da byte sırasıdır; indeks gerektirmemek için burada sıralıyoruz
        return sorted(folders, key=lambda f: f.name)

    def list_all_folders(self, owner_id: Optional[str] = None) -> List[FolderOut]:
        query = self.folders_collection
        if owner_id is not None:
            query = query.where(filter=FieldFilter("owner_id", "==", owner_id))
        return [self._folder_from_doc(doc) for doc in query.stream()]

    def delete_folder(self, folder_id: str) -> bool:
        current = self.get_folder(folder_id)
        if current is None:
            return False
        batch = self.db.batch()
        batch.delete(self._folder_claim(current.owner_id, current.parent_id, current.name))
        batch.delete(self.folders_collection.document(folder_id))
        batch.commit()
        return True

    # ------------------ FILES ------------------
    @staticmethod
    def _file_from_doc(doc) -> FileOut:
        return FileOut(id=doc.id, **(doc.to_dict() or {}))

    def create_file_record(self, file_data: FileCreate) -> FileOut:
        file_dict = file_data.model_dump()
        doc_ref = self.files_collection.document()
        batch = self.db.batch()
        batch.create(self._blob_claim(file_data.blob_handle), {"file_id": doc_ref.id})
        if file_data.deleted_at is None:
            batch.create(
                self._file_claim(file_data.owner_id, file_data.folder_id, file_data.name),
                {"file_id": doc_ref.id},
            )
        batch.set(doc_ref, file_dict)
        try:
            batch.commit()
        except gcp_exceptions.AlreadyExists:
            raise Conflict(f"Bu konumda '{file_data.name}' adında bir dosya zaten mevcut.")
        return FileOut(id=doc_ref.id, **file_dict)

    def get_file(self, file_id: str) -> Optional[FileOut]:
        doc = self.files_collection.document(file_id).get()
        if not doc.exists:
            return None
        return self._file_from_doc(doc)

    def get_files_by_ids(self, file_ids: List[str]) -> Dict[str, FileOut]:
        results: Dict[str, FileOut] = {}
        for chunk in _chunks(list(set(file_ids))):
            query = self.files_collection.where(filter=FieldFilter(FieldPath.document_id(), "in", chunk))
            for doc in query.stream():
                results[doc.id] = self._file_from_doc(doc)
        return results

    def live_file_name_exists(self, owner_id: str, folder_id: Optional[str], name: str) -> bool:
        return self._file_claim(owner_id, folder_id, name).get().exists

    def update_file(self, file_id: str, name: str, folder_id: Optional[str]) -> FileOut:
        current = self.get_file(file_id)
        if current is None:
            raise NotFound("Dosya bulunamadı.")

        batch = self.db.batch()
        same_key = current.name.lower() == name.lower() and current.folder_id == folder_id
        if current.deleted_at is None and not same_key:
            batch.delete(self._file_claim(current.owner_id, current.folder_id, current.name))
            batch.create(self._file_claim(current.owner_id, folder_id, name), {"file_id": file_id})
        batch.update(self.files_collection.document(file_id), {"name": name, "folder_id": folder_id})
        try:
            batch.commit()
        except gcp_exceptions.AlreadyExists:
            raise Conflict(f"Bu konumda '{name}' adında bir dosya zaten mevcut.")
        return current.model_copy(update={"name": name, "folder_id": folder_id})

    def set_file_deleted_at(self, file_id: str, deleted_at: Optional[datetime]) -> FileOut:
        current = self.get_file(file_id)
        if current is None:
            raise NotFound("Dosya bulunamadı.")

        claim_ref = self._file_claim(current.owner_id, current.folder_id, current.name)
        batch = self.db.batch()
        if deleted_at is not None and current.deleted_at is None:
            # Çöpe atılan dosya ismini serbest bırakır
            batch.delete(claim_ref)
        elif deleted_at is None and current.deleted_at is not None:
            batch.create(claim_ref, {"file_id": file_id})
        batch.update(self.files_collection.document(file_id), {"deleted_at": deleted_at})
        try:
            batch.commit()
        except gcp_exceptions.AlreadyExists:
            raise Conflict(f"Bu konumda '{current.name}' adında canlı bir dosya var, geri yüklenemez.")
        return current.model_copy(update={"deleted_at": deleted_at})

    def delete_file_record(self, file_id: str) -> bool:
        current = self.get_file(file_id)
        if current is None:
            return False
        batch = self.db.batch()
        batch.delete(self._blob_claim(current.blob_handle))
        if current.deleted_at is None:
            batch.delete(self._file_claim(current.owner_id, current.folder_id, current.name))
        batch.delete(self.files_collection.document(file_id))
        batch.commit()
        return True

    def get_files_by_folder(self, folder_id: str, include_deleted: bool = True) -> List[FileOut]:
        query = self.files_collection.where(filter=FieldFilter("folder_id", "==", folder_id))
        if not include_deleted:
            query = query.where(filter=FieldFilter("deleted_at", "==", None))
        return [self._file_from_doc(doc) for doc in query.stream()]

    def _files_query(self, owner_id: Optional[str], folder_id: LocationFilter, include_deleted: bool):
        query = self.files_collection
        if owner_id is not None:
            query = query.where(filter=FieldFilter("owner_id", "==", owner_id))
        if folder_id is not UNSET:
            query = query.where(filter=FieldFilter("folder_id", "==", folder_id))
        if not include_deleted:
            query = query.where(filter=FieldFilter("deleted_at", "==", None))
        return query

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
        query = self._files_query(owner_id, folder_id, include_deleted)

        if search:
            # Firestore alt-dize araması desteklemiyor: filtreyi Python tarafında uygula
            needle = search.lower()
            matches = [
                self._file_from_doc(doc) for doc in query.stream()
                if needle in (doc.get("name") or "").lower()
            ]
            matches.sort(
                key=lambda f: sort_key(getattr(f, sort_by)),
                reverse=descending,
            )
            return matches[offset:offset + limit], len(matches)

        total = self._count(query)
        direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        page_query = query.order_by(sort_by, direction=direction).offset(offset).limit(limit)
        return [self._file_from_doc(doc) for doc in page_query.stream()], total

    def get_storage_usage(self, owner_id: str) -> Tuple[int, int]:
        query = self._files_query(owner_id, UNSET, include_deleted=False)
        aggregate = query.sum("size", alias="total_size").count(alias="total_files")
        values = {}
        for result in aggregate.get():
            for item in result:
                values[item.alias] = item.value
        return int(values.get("total_size") or 0), int(values.get("total_files") or 0)

    def list_live_files(self, owner_id: str) -> List[FileOut]:
        query = self._files_query(owner_id, UNSET, include_deleted=False)
        return [self._file_from_doc(doc) for doc in query.stream()]

    def platform_stats(self) -> Dict[str, Any]:
        live_query = self._files_query(None, UNSET, include_deleted=False)
        mime_types: Dict[str, Dict[str, int]] = {}
        total_storage = 0
        live_count = 0
        for doc in live_query.select(["mime_type", "size"]).stream():
            data = doc.to_dict() or {}
            size = int(data.get("size") or 0)
            bucket = mime_types.setdefault(
                (data.get("mime_type") or "unknown").split("/")[0], {"count": 0, "total_size": 0}
            )
            bucket["count"] += 1
            bucket["total_size"] += size
            total_storage += size
            live_count += 1

        return {
            "total_owners": self._count(self.users_collection),
            "active_owners": self._count(self.users_collection.where(filter=FieldFilter("is_active", "==", True))),
            "admin_owners": self._count(self.users_collection.where(filter=FieldFilter("role", "==", "admin"))),
            "total_files": live_count,
            "deleted_files": self._count(self.files_collection) - live_count,
            "total_folders": self._count(self.folders_collection),
            "total_storage": total_storage,
            "mime_types": mime_types,
        }

    # ------------------ VERIFICATION CODES ------------------
    def create_verification_code(self, email: str, code: str, code_type: str, expires_at: datetime) -> VerificationCode:
        previous = (
            self.codes_collection.where(filter=FieldFilter("email", "==", email))
            .where(filter=FieldFilter("type", "==", code_type))
            .where(filter=FieldFilter("used", "==", False))
            .stream()
        )
        doc_ref = self.codes_collection.document()
        data = {"email": email, "code": code, "type": code_type, "expires_at": expires_at, "used": False}
        batch = self.db.batch()
        for doc in previous:
            batch.update(doc.reference, {"used": True})
        batch.set(doc_ref, data)
        batch.commit()
        return VerificationCode(id=doc_ref.id, **data)

    def find_valid_code(self, email: str, code: str, code_type: str, now: datetime) -> Optional[VerificationCode]:
        query = (
            self.codes_collection.where(filter=FieldFilter("email", "==", email))
            .where(filter=FieldFilter("code", "==", code))
            .where(filter=FieldFilter("type", "==", code_type))
            .where(filter=FieldFilter("used", "==", False))
        )
        for doc in query.stream():
            record = VerificationCode(id=doc.id, **(doc.to_dict() or {}))
            if record.is_valid(now):
                return record
        return None

    # ------------------ ACCOUNT CASCADE ------------------
    def delete_owner_cascade(self, owner_id: str) -> Dict[str, Any]:
        owner_ref = self.users_collection.document(owner_id)
        files_query = self.files_collection.where(filter=FieldFilter("owner_id", "==", owner_id))
        folders_query = self.folders_collection.where(filter=FieldFilter("owner_id", "==", owner_id))

        @firestore.transactional
        def _cascade(transaction):
            # Transaction içinde önce tüm okumalar, sonra yazmalar
            snapshot = owner_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise NotFound("Kullanıcı bulunamadı.")
            email = snapshot.get("email")
            file_docs = list(files_query.stream(transaction=transaction))
            folder_docs = list(folders_query.stream(transaction=transaction))
            code_docs = list(
                self.codes_collection.where(filter=FieldFilter("email", "==", email)).stream(transaction=transaction)
            )

            message_ids = []
            for doc in file_docs:
                record = self._file_from_doc(doc)
                transaction.delete(self._blob_claim(record.blob_handle))
                if record.deleted_at is None:
                    transaction.delete(self._file_claim(record.owner_id, record.folder_id, record.name))
                transaction.delete(doc.reference)
                if record.blob_message_id is not None:
                    message_ids.append(record.blob_message_id)
            for doc in folder_docs:
                folder = self._folder_from_doc(doc)
                transaction.delete(self._folder_claim(folder.owner_id, folder.parent_id, folder.name))
                transaction.delete(doc.reference)
            for doc in code_docs:
                transaction.delete(doc.reference)
            transaction.delete(self.db.collection("email_claims").document(_claim_id(email)))
            transaction.delete(owner_ref)

            return {
                "files_deleted": len(file_docs),
                "folders_deleted": len(folder_docs),
                "codes_deleted": len(code_docs),
                "released_message_ids": message_ids,
            }

        logger.info("Hesap silme transaction'ı başlatılıyor (owner: %s)", owner_id)
        return _cascade(self.db.transaction())
