# backend/telecloud/core/config.py

import os
from dotenv import load_dotenv

# .env dosyasını yükle
load_dotenv()

# --- GÜVENLİK VE JWT AYARLARI ---
SECRET_KEY = os.environ.get("SECRET_KEY")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.environ.get("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24)) # 1 gün

# --- MİMARİ "SWITCH" AYARLARI ---
# "firestore" (bulut) veya "memory" (lokal geliştirme / testler)
DEPLOYMENT_TYPE = os.environ.get("DEPLOYMENT_TYPE", "firestore")

# --- FIRESTORE AYARLARI (Eğer DEPLOYMENT_TYPE = "firestore") ---
GOOGLE_APPLICATION_CREDENTIALS = os.environ.get("GOOGLE_APPLICATION_CREDENTIALS")

# --- TELEGRAM (BLOB DEPOSU) AYARLARI ---
TELEGRAM_BOT_TOKEN = os.environ.get("TELEGRAM_BOT_TOKEN")
TELEGRAM_CHAT_ID = os.environ.get("TELEGRAM_CHAT_ID")
TELEGRAM_API_BASE = os.environ.get("TELEGRAM_API_BASE", "https://api.telegram.org")
TELEGRAM_TIMEOUT_SECONDS = float(os.environ.get("TELEGRAM_TIMEOUT_SECONDS", "60"))

# Kalıcı silmede Telegram mesajı da silinsin mi? (best-effort)
RELEASE_BLOBS_ON_PURGE = os.environ.get("RELEASE_BLOBS_ON_PURGE", "true").lower() == "true"

# --- DOSYA VE KLASÖR LİMİTLERİ ---
MAX_FILE_SIZE = 50 * 1024 * 1024  # Telegram bot API limiti: 50MB
MAX_ARCHIVE_ENTRIES = 200
MAX_FOLDER_DEPTH = 1000
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
VERIFICATION_CODE_TTL_MINUTES = 10

# --- GÜVENLİK AYARLARI ---
ENVIRONMENT = os.environ.get("ENVIRONMENT", "production")  # development, staging, production
DEBUG = os.environ.get("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
RATE_LIMIT_ENABLED = os.environ.get("RATE_LIMIT_ENABLED", "true").lower() == "true"
CORS_EXTRA_ORIGINS = os.environ.get("CORS_EXTRA_ORIGINS")
