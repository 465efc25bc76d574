import os
from dotenv import load_dotenv

load_dotenv()  # Load from .env file

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./journal_insights.db")

# Token
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# Theme extraction provider: "openai" | "gemini-proxy"
INSIGHTS_PROVIDER = os.getenv("INSIGHTS_PROVIDER", "openai")
INSIGHTS_EXTRACTION_TIMEOUT = float(os.getenv("INSIGHTS_EXTRACTION_TIMEOUT", "60"))

# OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")

# Gemini proxy
GEMINI_PROXY_URL = os.getenv("GEMINI_PROXY_URL")
GEMINI_PROXY_KEY = os.getenv("GEMINI_PROXY_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

# Reconciliation limits
INSIGHTS_MAX_THEMES = int(os.getenv("INSIGHTS_MAX_THEMES", "10"))
INSIGHTS_MIN_ENTRIES = int(os.getenv("INSIGHTS_MIN_ENTRIES", "5"))
INSIGHTS_MAX_ENTRIES = int(os.getenv("INSIGHTS_MAX_ENTRIES", "50"))
INSIGHTS_TIMEZONE = os.getenv("INSIGHTS_TIMEZONE", "UTC")
