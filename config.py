import os


class Config:
    def __init__(self) -> None:
        self.APP_ENV = os.getenv("APP_ENV", "development")
        self.APP_VERSION = os.getenv("APP_VERSION", "dev")
        self.HOST = os.getenv("HOST", "0.0.0.0")
        self.PORT = int(os.getenv("PORT", "5002"))

        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ats.db")

        self.JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret")
        self.JWT_EXP_MINUTES = int(os.getenv("JWT_EXP_MINUTES", "720"))
        # One-time creation of the first admin (POST /api/v1/auth/bootstrap); empty disables it.
        self.BOOTSTRAP_TOKEN = os.getenv("BOOTSTRAP_TOKEN", "").strip()

        self.ALLOWED_ORIGINS = [
            s.strip() for s in (os.getenv("ALLOWED_ORIGINS", "*") or "*").split(",") if s.strip()
        ]

        # Blob storage for resumes:
        # - local: store bytes under UPLOAD_DIR and serve via GET /files/<bucket>/<path>
        # - supabase: upload to Supabase Storage over its REST API, return the bucket's public URL
        self.FILE_STORAGE_MODE = os.getenv("FILE_STORAGE_MODE", "local").strip().lower()
        self.UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")
        self.PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").strip().rstrip("/")
        self.SUPABASE_URL = os.getenv("SUPABASE_URL", "").strip().rstrip("/")
        self.SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "").strip()
        self.STORAGE_TIMEOUT_SECONDS = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "30"))

        self.RESUME_BUCKET = os.getenv("RESUME_BUCKET", "resumes").strip() or "resumes"
        self.RESUME_MAX_BYTES = int(os.getenv("RESUME_MAX_BYTES", str(5 * 1024 * 1024)))

        # columns: mode/interviewers get their own columns on new writes.
        # notes: pack them into interview notes (fixed legacy schema).
        self.INTERVIEW_METADATA_MODE = os.getenv("INTERVIEW_METADATA_MODE", "columns").strip().lower()

        self.RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "300 per minute")
        self.RATE_LIMIT_GLOBAL = os.getenv("RATE_LIMIT_GLOBAL", "2000 per minute")

        # Cached collections are reloaded from the store after this many seconds (0 = keep until refresh).
        self.STATE_MAX_AGE_SECONDS = float(os.getenv("STATE_MAX_AGE_SECONDS", "30"))

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        self.ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "0") == "1"
        self.RECONCILE_INTERVAL_MINUTES = int(os.getenv("RECONCILE_INTERVAL_MINUTES", "60"))

    @property
    def IS_PRODUCTION(self) -> bool:
        return str(self.APP_ENV or "").strip().lower() in {"prod", "production"}

    def validate(self) -> None:
        if self.INTERVIEW_METADATA_MODE not in {"columns", "notes"}:
            raise RuntimeError("INTERVIEW_METADATA_MODE must be 'columns' or 'notes'")

        if self.FILE_STORAGE_MODE not in {"local", "supabase"}:
            raise RuntimeError("FILE_STORAGE_MODE must be 'local' or 'supabase'")

        if self.FILE_STORAGE_MODE == "supabase" and not (self.SUPABASE_URL and self.SUPABASE_SERVICE_KEY):
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set when FILE_STORAGE_MODE=supabase")

        if self.RESUME_MAX_BYTES <= 0:
            raise RuntimeError("RESUME_MAX_BYTES must be positive")

        if self.IS_PRODUCTION and str(self.JWT_SECRET or "").strip() in {"", "dev-secret"}:
            raise RuntimeError("JWT_SECRET must be set in production")

        if self.IS_PRODUCTION and str(self.DATABASE_URL or "").startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (Supabase recommended)")

        if self.IS_PRODUCTION and any(str(o or "").strip() == "*" for o in (self.ALLOWED_ORIGINS or [])):
            raise RuntimeError("ALLOWED_ORIGINS must not contain '*' in production")
