import os
from pathlib import Path

from dotenv import load_dotenv

# Explicitly load .env from project root (parent of flylinks/)
ENV_PATH = Path(__file__).parent.parent / ".env"
load_dotenv(ENV_PATH)

ENVIRONMENT = os.getenv("ENVIRONMENT", "dev")
DATABASE_URL = os.getenv("DATABASE_URL")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")

# Number of links returned by a listing when no limit is given
RECENT_URLS = int(os.getenv("RECENT_URLS", 25))

# "api_key" logs everybody in as DEFAULT_USER, "password" as the admin user
AUTH_STRATEGY = os.getenv("AUTH_STRATEGY", "api_key").strip().lower()
API_KEY = os.getenv("API_KEY", "").strip()
ADMIN_USERNAME = (os.getenv("ADMIN_USERNAME") or os.getenv("USERNAME") or "").strip()
ADMIN_PASSWORD = (os.getenv("ADMIN_PASSWORD") or os.getenv("PASSWORD") or "").strip()

SECRET_KEY = os.getenv("SECRET_KEY")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60))

# Owner of every link when the deployment has no real notion of users
DEFAULT_USER = "default user"

# Column sizes shared by the models and the validators
MAX_URL_LENGTH = 2048
MAX_CODE_LENGTH = 64

# Paths served by fixed routes; never usable as short codes
RESERVED_CODES = frozenset({
    "", "docs", "openapi.json", "redoc", "login", "logout", "links",
    "delete", "api", "favicon.ico", "health",
})
