import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

DB_POOL_TIMEOUT_SECONDS = int(os.getenv("DB_POOL_TIMEOUT_SECONDS", "10"))
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))

JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "60"))

CANDIDATE_USER_LIMIT = int(os.getenv("CANDIDATE_USER_LIMIT", "50"))
MESSAGE_MAX_LENGTH = int(os.getenv("MESSAGE_MAX_LENGTH", "2000"))
NOTIFICATION_WORKERS = int(os.getenv("NOTIFICATION_WORKERS", "2"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

RL_LIKE_LIMIT = int(os.getenv("RL_LIKE_LIMIT", "120"))
RL_PASS_LIMIT = int(os.getenv("RL_PASS_LIMIT", "120"))
RL_MESSAGE_LIMIT = int(os.getenv("RL_MESSAGE_LIMIT", "60"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))
