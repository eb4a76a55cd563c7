# backend/telecloud/repositories/base.py

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any, Tuple, Union
from datetime import datetime

from telecloud.schemas.owner import OwnerCreate, OwnerInDB, VerificationCode
from telecloud.schemas.folder import FolderOut
from telecloud.schemas.file import FileCreate, FileOut
from telecloud.schemas.common import UNSET, _Unset

# folder_id / parent_id filtresi: UNSET -> hepsi, None -> kök dizin, str -> o klasör
LocationFilter = Union[Optional[str], _Unset]


def sort_key(value):
    # None değerler her zaman en küçük kabul edilir
    return (0, "") if value is None else (1, value)


class BaseRepository(ABC):
    """
    Metadata deposu arayüzü.
    Benzersizlik kuralları (kardeş klasör adı, canlı dosya adı, blob handle)
    bu katmanda, yazma ile aynı atomik işlemde zorlanır; ihlal Conflict fırlatır.
    """

    # --- Owner Metodları ---
    @abstractmethod
    def get_owner_by_email(self, email: str) -> Optional[OwnerInDB]: pass

    @abstractmethod
    def get_owner_by_id(self, owner_id: str) -> Optional[OwnerInDB]: pass

    @abstractmethod
    def create_owner(self, owner_create: OwnerCreate, hashed_password: str, role: str = "user") -> OwnerInDB:
        """Yeni owner oluşturur. Email zaten kayıtlıysa Conflict fırlatır."""
        pass

    @abstractmethod
    def get_owners_by_ids(self, owner_ids: List[str]) -> Dict[str, OwnerInDB]: pass

    @abstractmethod
    def list_owners(self) -> List[OwnerInDB]: pass

    @abstractmethod
    def update_owner_usage(self, owner_id: str, total_files: int, total_size: int) -> None:
        """Önbellek sayaçlarını (Resync) yazar."""
        pass

    # --- Folder Metodları ---
    @abstractmethod
    def create_folder(self, name: str, parent_id: Optional[str], owner_id: str) -> FolderOut: pass

    @abstractmethod
    def get_folder(self, folder_id: str) -> Optional[FolderOut]: pass

    @abstractmethod
    def get_folders_by_ids(self, folder_ids: List[str]) -> Dict[str, FolderOut]: pass

    @abstractmethod
    def update_folder(self, folder_id: str, name: str, parent_id: Optional[str]) -> FolderOut:
        """Adı ve/veya üst klasörü günceller; kardeş ad çakışması Conflict fırlatır."""
        pass

    @abstractmethod
    def list_folders(self, owner_id: str, parent_id: LocationFilter = UNSET) -> List[FolderOut]:
        """İsme göre (büyük/küçük harf duyarlı) artan sıralı klasör listesi."""
        pass

    @abstractmethod
    def list_all_folders(self, owner_id: Optional[str] = None) -> List[FolderOut]:
        """(Admin) Tüm klasörler; owner_id verilirse sadece o kullanıcınınkiler."""
        pass

    @abstractmethod
    def delete_folder(self, folder_id: str) -> bool: pass

    # --- File Metodları ---
    @abstractmethod
    def create_file_record(self, file_data: FileCreate) -> FileOut:
        """Veritabanına bir dosya kaydı (metadata) ekler."""
        pass

    @abstractmethod
    def get_file(self, file_id: str) -> Optional[FileOut]: pass

    @abstractmethod
    def get_files_by_ids(self, file_ids: List[str]) -> Dict[str, FileOut]: pass

    @abstractmethod
    def live_file_name_exists(self, owner_id: str, folder_id: Optional[str], name: str) -> bool:
        """Aynı konumda (büyük/küçük harf duyarsız) aynı isimde canlı dosya var mı?"""
        pass

    @abstractmethod
    def update_file(self, file_id: str, name: str, folder_id: Optional[str]) -> FileOut: pass

    @abstractmethod
    def set_file_deleted_at(self, file_id: str, deleted_at: Optional[datetime]) -> FileOut:
        """
        Soft delete (deleted_at=zaman) veya geri yükleme (deleted_at=None).
        Geri yüklemede aynı isimde canlı dosya varsa Conflict fırlatır.
        """
        pass

    @abstractmethod
    def delete_file_record(self, file_id: str) -> bool:
        """Bir dosyanın kaydını (metadata) veritabanından kalıcı olarak siler."""
        pass

    @abstractmethod
    def get_files_by_folder(self, folder_id: str, include_deleted: bool = True) -> List[FileOut]: pass

    @abstractmethod
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
        """
        Filtrelenmiş, sıralanmış sayfayı ve filtreye uyan TOPLAM kayıt sayısını döndürür.
        owner_id=None sadece admin listelemesi içindir.
        """
        pass

    @abstractmethod
    def get_storage_usage(self, owner_id: str) -> Tuple[int, int]:
        """Canlı dosyalar üzerinden (toplam_boyut, dosya_sayısı) tek geçişte."""
        pass

    @abstractmethod
    def list_live_files(self, owner_id: str) -> List[FileOut]: pass

    @abstractmethod
    def platform_stats(self) -> Dict[str, Any]:
        """(Admin) owner/dosya/klasör sayıları, toplam depolama ve MIME dağılımı."""
        pass

    # --- Doğrulama Kodları ---
    @abstractmethod
    def create_verification_code(self, email: str, code: str, code_type: str, expires_at: datetime) -> VerificationCode:
        """Yeni kod ekler; aynı email+tip için önceki kullanılmamış kodları 'used' yapar."""
        pass

    @abstractmethod
    def find_valid_code(self, email: str, code: str, code_type: str, now: datetime) -> Optional[VerificationCode]: pass

    # --- Hesap Silme ---
    @abstractmethod
    def delete_owner_cascade(self, owner_id: str) -> Dict[str, Any]:
        """
        TEK bir transaction içinde: dosyalar -> klasörler -> doğrulama kodları -> owner.
        Herhangi bir hata tüm işlemi geri alır.
        Dönüş: {"files_deleted", "folders_deleted", "codes_deleted", "released_message_ids"}
        """
        pass
