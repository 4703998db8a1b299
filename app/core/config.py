import os
import logging

class Settings:
    database_url: str = os.getenv("ELIB_DB", "sqlite:///./elibrary.db")
    log_level: str = os.getenv("ELIB_LOG", "INFO")
    session_secret: str = os.getenv("ELIB_SESSION_SECRET", "elibrary-dev-secret-change-me")
    session_max_age: int = int(os.getenv("ELIB_SESSION_MAX_AGE", str(60 * 60 * 24 * 7)))
    loan_days: int = int(os.getenv("ELIB_LOAN_DAYS", "14"))
    bcrypt_rounds: int = int(os.getenv("ELIB_BCRYPT_ROUNDS", "12"))

settings = Settings()

logging.basicConfig(level=settings.log_level,
                    format="%(asctime)s %(levelname)s %(name)s - %(message)s")
logger = logging.getLogger("elibrary")
