import os
from dotenv import load_dotenv

load_dotenv()

# -------------------------
# PRIMARY STORE (PostgreSQL)
# -------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://localhost:5432/agrigrant")
DB_POOL_MIN = int(os.getenv("DB_POOL_MIN", 1))
DB_POOL_MAX = int(os.getenv("DB_POOL_MAX", 10))

# -------------------------
# QUERY CACHE
# -------------------------
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "redis").strip().lower()  # "redis" / "memory"
MEMORY_CACHE_MAX_ENTRIES = int(os.getenv("MEMORY_CACHE_MAX_ENTRIES", 10000))

SEARCH_CACHE_TTL = int(os.getenv("SEARCH_CACHE_TTL", 300))
SUGGESTION_CACHE_TTL = int(os.getenv("SUGGESTION_CACHE_TTL", 600))

# -------------------------
# SEARCH INDEX (Elasticsearch)
# -------------------------
ELASTICSEARCH_URL = os.getenv("ELASTICSEARCH_URL", "http://localhost:9200")
FARMER_INDEX = os.getenv("FARMER_INDEX", "farmers")
SUGGESTION_BACKEND = os.getenv("SUGGESTION_BACKEND", "index").strip().lower()  # "index" / "store"

# Seconds an index availability check is trusted before it is repeated
INDEX_RECHECK_INTERVAL = float(os.getenv("INDEX_RECHECK_INTERVAL", 30))

# Seconds between scheduled resyncs; 0 disables the background job
SYNC_INTERVAL_SECONDS = float(os.getenv("SYNC_INTERVAL_SECONDS", 0))

# -------------------------
# QUERY LIMITS
# -------------------------
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", 20))
MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", 100))
MIN_PREFIX_LENGTH = int(os.getenv("MIN_PREFIX_LENGTH", 2))
SUGGESTION_LIMIT = int(os.getenv("SUGGESTION_LIMIT", 10))

# -------------------------
# SERVICE
# -------------------------
SERVICE_NAME = "search-api"
HEALTH_CHECK_TIMEOUT = float(os.getenv("HEALTH_CHECK_TIMEOUT", 2.0))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3001))
