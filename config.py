"""
Settings for the expense ledger API, read from the environment (.env supported)
"""

import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    """Application settings"""

    # Persistence
    DATA_DIR: str = os.getenv("DATA_DIR", "./data")
    GROUPS_FILE: str = os.getenv("GROUPS_FILE", os.path.join(DATA_DIR, "groups.json"))

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))
    CORS_ORIGINS: list = os.getenv("CORS_ORIGINS", "*").split(",")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate_config(cls) -> bool:
        """Check that the settings are usable"""
        if not cls.GROUPS_FILE:
            raise ValueError("GROUPS_FILE must not be empty")
        if not 0 < cls.PORT < 65536:
            raise ValueError(f"PORT out of range: {cls.PORT}")
        if cls.LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown LOG_LEVEL: {cls.LOG_LEVEL}")
        return True
