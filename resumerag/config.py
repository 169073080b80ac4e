import os
from dotenv import load_dotenv

load_dotenv()

# Record store
MONGO_DETAILS = os.getenv("MONGO_DETAILS", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "resumerag")
RECORD_STORE = os.getenv("RECORD_STORE", "mongo").lower()  # mongo | memory

# Embedding provider (OpenAI-compatible /embeddings endpoint)
EMBEDDING_API_KEY = os.getenv("EMBEDDING_API_KEY") or os.getenv("OPENAI_API_KEY", "")
EMBEDDING_BASE_URL = os.getenv("EMBEDDING_BASE_URL", "https://api.openai.com/v1")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
# hard character ceiling, roughly 8000 tokens
EMBEDDING_MAX_CHARS = int(os.getenv("EMBEDDING_MAX_CHARS", "32000"))
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "30"))

# Uploads and pagination
MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", "10485760"))
MAX_FILES_PER_UPLOAD = int(os.getenv("MAX_FILES_PER_UPLOAD", "10"))
DEFAULT_PAGINATION_LIMIT = int(os.getenv("DEFAULT_PAGINATION_LIMIT", "20"))
MAX_PAGINATION_LIMIT = int(os.getenv("MAX_PAGINATION_LIMIT", "100"))

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

API_VERSION = "1.0.0"

# Policy constants, deliberately not read from the environment.
RATE_LIMIT_PER_WINDOW = 60
RATE_LIMIT_WINDOW_SECONDS = 60
IDEMPOTENCY_TTL_SECONDS = 24 * 60 * 60
