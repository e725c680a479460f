import os

from dotenv import load_dotenv

load_dotenv()

OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
OPENROUTER_BASE_URL = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
APP_REFERER = os.getenv("APP_REFERER", "http://localhost:3000")
APP_TITLE = os.getenv("APP_TITLE", "Dream2Design")

PRIMARY_MODEL = os.getenv("PRIMARY_MODEL", "qwen/qwen3-coder:free")
FALLBACK_MODEL = os.getenv("FALLBACK_MODEL", "deepseek/deepseek-chat")
MODEL_TIMEOUT_SEC = float(os.getenv("MODEL_TIMEOUT_SEC", "90"))
MODEL_RETRIES = int(os.getenv("MODEL_RETRIES", "3"))
RETRY_BASE_DELAY_SEC = float(os.getenv("RETRY_BASE_DELAY_SEC", "2"))
MODEL_TEMPERATURE = float(os.getenv("MODEL_TEMPERATURE", "0.3"))
MODEL_MAX_TOKENS = int(os.getenv("MODEL_MAX_TOKENS", "12000"))

JOBS_DIR = os.path.abspath(os.getenv("JOBS_DIR", "./jobs"))
CHAT_ALLOW_NEW_FILES = os.getenv("CHAT_ALLOW_NEW_FILES", "false").lower() in ("1", "true", "yes")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", "3000"))
