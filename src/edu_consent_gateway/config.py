"""
Application configuration.

All values are read from environment variables so the same image can run
against a local Hardhat node, a docker-compose stack, or a test harness.

Usage:
    app.config.from_object(Config)
"""

import os


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "4000"))
    DEBUG: bool = _env_flag("DEBUG")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Chain
    RPC_URL: str = os.getenv("RPC_URL", "http://127.0.0.1:8545")
    RPC_TIMEOUT: int = int(os.getenv("RPC_TIMEOUT", "10"))

    # Hardhat deterministic deployment order: EduToken, EduIdentity, EduConsent
    EDU_TOKEN_ADDRESS: str = os.getenv(
        "EDU_TOKEN_ADDRESS",
        "0x5FbDB2315678afecb367f032d93F642f64180aa3"
    )
    EDU_IDENTITY_ADDRESS: str = os.getenv(
        "EDU_IDENTITY_ADDRESS",
        "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
    )
    EDU_CONSENT_ADDRESS: str = os.getenv(
        "EDU_CONSENT_ADDRESS",
        "0x9fE46736679d2D9a65F0992F2272dE9f3c7fa6e0"
    )
    CONSENT_FROM_BLOCK: int = int(os.getenv("CONSENT_FROM_BLOCK", "0"))

    # Datastore
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    DB_HOST: str = os.getenv("DB_HOST", "localhost")
    DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
    DB_NAME: str = os.getenv("DB_NAME", "consent_database")
    DB_USER: str = os.getenv("DB_USER", "postgres")
    DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")

    # Optional consent-history cache
    REDIS_URL: str = os.getenv("REDIS_URL", "")
    CONSENT_LOG_CACHE_TTL: int = int(os.getenv("CONSENT_LOG_CACHE_TTL", "30"))

    SEED_DEMO_RECORDS: bool = _env_flag("SEED_DEMO_RECORDS", "true")

    CORS_ORIGINS: list = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
        ).split(",")
        if origin.strip()
    ]
