# backend configuration
# loads env vars for mongodb, local fallback store, jwt, gemini

import os
from pathlib import Path
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# load .env from project root
load_dotenv(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    # mongodb (primary store)
    MONGODB_URI: str = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    MONGODB_DATABASE: str = os.getenv("MONGODB_DATABASE", "recreo_db")
    MONGODB_TIMEOUT_MS: int = int(os.getenv("MONGODB_TIMEOUT_MS", "3000"))

    # local fallback store (sqlite key-value file)
    FALLBACK_STORE_PATH: str = os.getenv("FALLBACK_STORE_PATH", "data/fallback_store.db")

    # jwt auth
    JWT_SECRET: str = os.getenv("JWT_SECRET", "recreo-dev-secret-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # gemini (structured plan generation)
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    GEMINI_TEMPERATURE: float = 0.4

    # cors
    FRONTEND_URL: str = os.getenv("FRONTEND_URL", "http://localhost:3000")

    # dashboard
    RECENT_PLANS_LIMIT: int = 5

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
