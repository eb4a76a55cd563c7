# backend/telecloud/schemas/owner.py

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    email: Optional[EmailStr] = None
    role: Optional[str] = None


class OwnerBase(BaseModel):
    email: EmailStr
    name: Optional[str] = None

    @field_validator('email', mode='after')
    @classmethod
    def lowercase_email(cls, v):
        return v.lower()


class OwnerCreate(OwnerBase):
    password: str = Field(..., min_length=8)


class OwnerInDB(OwnerBase):
    id: str
    role: str = "user"  # "user" | "admin"
    is_active: bool = True
    hashed_password: Optional[str] = None
    # Dosya deposundan türetilen önbellek değerleri; yalnızca Resync ile güncellenir
    total_files_uploaded: int = 0
    total_storage_used: int = 0
    created_at: Optional[datetime] = None


class OwnerOut(OwnerBase):
    id: str
    role: str
    is_active: bool
    total_files_uploaded: int = 0
    total_storage_used: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# --- Hesap Silme (Doğrulama Kodu) ---
class VerificationCode(BaseModel):
    id: str
    email: EmailStr
    code: str
    type: str
    expires_at: datetime
    used: bool = False

    def is_valid(self, now: datetime) -> bool:
        return not self.used and now < self.expires_at


class DeletionCodeIssued(BaseModel):
    message: str
    expires_at: datetime


class ConfirmDeletionRequest(BaseModel):
    code: str = Field(..., pattern=r"^\d{6}$")


class AccountDeletionResult(BaseModel):
    message: str
    files_deleted: int
    folders_deleted: int
