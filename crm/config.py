from decouple import config, Csv

# Database
DATABASE_URL = config("DATABASE_URL", default="sqlite:///./studio_crm.db")

# Authentication
JWT_SECRET = config("JWT_SECRET", default="dev-secret-change-in-production")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = config("ACCESS_TOKEN_EXPIRE_MINUTES", default=1440, cast=int)
AUTH_COOKIE_NAME = "auth_token"
ADMIN_EMAIL = config("ADMIN_EMAIL", default="admin@localhost")
ADMIN_PASSWORD = config("ADMIN_PASSWORD", default="admin")

# Uploads
UPLOAD_DIR = config("UPLOAD_DIR", default="uploads/projects")
MAX_FILE_SIZE = config("MAX_FILE_SIZE", default=50 * 1024 * 1024, cast=int)

# Admin dashboard
API_BASE_URL = config("API_BASE_URL", default="http://localhost:8000")
DASHBOARD_REFRESH_SECONDS = config("DASHBOARD_REFRESH_SECONDS", default=300, cast=float)
AUTH_PROBE_ATTEMPTS = config("AUTH_PROBE_ATTEMPTS", default=5, cast=int)
AUTH_PROBE_DELAY = config("AUTH_PROBE_DELAY", default=0.5, cast=float)

FRONTEND_ORIGINS = config(
    "FRONTEND_ORIGINS",
    default="http://localhost:3000,http://localhost:5173",
    cast=Csv(),
)
LOG_LEVEL = config("LOG_LEVEL", default="INFO")
