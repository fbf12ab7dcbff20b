import os
from dotenv import load_dotenv
load_dotenv()


def _flag(name, default):
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///cliprate.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = _flag("WTF_CSRF_ENABLED", "1")
    REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local")
    LOCAL_STORAGE_DIR = os.getenv("LOCAL_STORAGE_DIR", "./storage")
    PUBLIC_MEDIA_URL = os.getenv("PUBLIC_MEDIA_URL")
    S3_ENDPOINT = os.getenv("S3_ENDPOINT")
    S3_REGION = os.getenv("S3_REGION")
    S3_BUCKET = os.getenv("S3_BUCKET")
    S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY")
    S3_SECRET_KEY = os.getenv("S3_SECRET_KEY")
    # submission / rating rules
    DAILY_ATTEMPT_LIMIT = int(os.getenv("DAILY_ATTEMPT_LIMIT", "3"))
    RECORDING_MAX_SECONDS = int(os.getenv("RECORDING_MAX_SECONDS", "10"))
    COMMENT_MAX_LENGTH = int(os.getenv("COMMENT_MAX_LENGTH", "50"))
    FORBID_SELF_RATING = _flag("FORBID_SELF_RATING", "1")
    NETWORK_TIMEOUT_SEC = float(os.getenv("NETWORK_TIMEOUT_SEC", "15"))
    ORPHAN_GRACE_SEC = int(os.getenv("ORPHAN_GRACE_SEC", "3600"))
