from pathlib import Path
import os
from dotenv import load_dotenv
from django.core.exceptions import ImproperlyConfigured

# -----------------------------------------------------
# Helpers
# -----------------------------------------------------
def env(name: str, default=None, *, required: bool = False):
    val = os.getenv(name, default)
    if required and (val is None or (isinstance(val, str) and val.strip() == "")):
        raise ImproperlyConfigured(f"Missing required environment variable: {name}")
    return val

def env_bool(name: str, default: bool = False) -> bool:
    return str(os.getenv(name, str(default))).lower() in {"1", "true", "yes", "on"}

# -----------------------------------------------------
# Paths & basics
# -----------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

DEBUG = env_bool("DEBUG", False)

# In production (DEBUG=False) you must set a strong secret in .env
SECRET_KEY = env("DJANGO_SECRET_KEY", "dev-only-secret-key-change-me", required=not DEBUG)

# Keep hosts explicit by default
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost").split(",") if h.strip()]

# -----------------------------------------------------
# Applications
# -----------------------------------------------------
INSTALLED_APPS = [
    # AnonymousUser lives in django.contrib.auth; DRF needs it even without sessions
    "django.contrib.contenttypes",
    "django.contrib.auth",

    # Third-party
    "rest_framework",

    # Local
    "api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "video_pipeline.urls"

WSGI_APPLICATION = "video_pipeline.wsgi.application"

# -----------------------------------------------------
# Database
# -----------------------------------------------------
# Jobs are processed synchronously and never persisted.
DATABASES = {}

# -----------------------------------------------------
# Internationalization
# -----------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# -----------------------------------------------------
# Django REST Framework
# -----------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.MultiPartParser",
        "rest_framework.parsers.FormParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [],
    "EXCEPTION_HANDLER": "api.exceptions.api_exception_handler",
}

# -----------------------------------------------------
# Uploads
# -----------------------------------------------------
MAX_UPLOAD_SIZE = int(env("MAX_UPLOAD_SIZE", str(200 * 1024 * 1024)))  # bytes
# Anything above this is spooled to disk by Django instead of held in memory
FILE_UPLOAD_MAX_MEMORY_SIZE = 2 * 1024 * 1024
FILE_UPLOAD_HANDLERS = [
    "api.uploadhandlers.MaxSizeUploadHandler",
    "django.core.files.uploadhandler.MemoryFileUploadHandler",
    "django.core.files.uploadhandler.TemporaryFileUploadHandler",
]

# Per-job scratch space: uploads/<id>, processed/<id>.mp4, thumbnails/<id>.webp
VIDEO_TMP_DIR = Path(env("VIDEO_TMP_DIR", str(BASE_DIR / "tmp")))

# -----------------------------------------------------
# Auth (shared bearer secret for the CMS)
# -----------------------------------------------------
CMS_SECRET = env("CMS_SECRET", "", required=not DEBUG)

# -----------------------------------------------------
# FFmpeg / watermark
# -----------------------------------------------------
FFMPEG_BINARY = env("FFMPEG_BINARY", "ffmpeg")
FFMPEG_THREADS = int(env("FFMPEG_THREADS", "2"))
FFMPEG_TIMEOUT_SECONDS = int(env("FFMPEG_TIMEOUT_SECONDS", str(60 * 10)))  # seconds
WATERMARK_PATH = Path(env("WATERMARK_PATH", str(BASE_DIR / "watermark.png")))

# -----------------------------------------------------
# S3 / R2 (env-driven; no hardcoded secrets)
# -----------------------------------------------------
S3_ENDPOINT_URL = os.getenv("S3_ENDPOINT_URL") or "http://127.0.0.1:9000"  # fine for local
S3_REGION = os.getenv("S3_REGION", "auto")
S3_BUCKET = os.getenv("S3_BUCKET", "media-local")
S3_ACCESS_KEY = os.getenv("S3_ACCESS_KEY")          # set in .env for local
S3_SECRET_KEY = os.getenv("S3_SECRET_KEY")          # set in .env for local
# Published artifacts are served from here: <S3_PUBLIC_BASE_URL>/<key>
S3_PUBLIC_BASE_URL = os.getenv("S3_PUBLIC_BASE_URL", "https://img.kawasaki-create.com").rstrip("/")

# -----------------------------------------------------
# Logging
# -----------------------------------------------------
LOG_LEVEL = env("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {"level": "WARNING", "propagate": True},
        "api": {"level": LOG_LEVEL, "propagate": True},
    },
}
