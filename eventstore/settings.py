from pydantic import BaseModel
import os

class Settings(BaseModel):
    database_url: str = os.getenv("EVENTSTORE_DATABASE_URL", "sqlite:///./eventstore.db")
    db_user: str | None = os.getenv("EVENTSTORE_DB_USER") or None
    db_password: str | None = os.getenv("EVENTSTORE_DB_PASSWORD") or None

    # empty string disables the statement, unset picks one from the dialect
    shutdown_statement: str | None = os.getenv("EVENTSTORE_SHUTDOWN_STATEMENT")

    log_level: str = os.getenv("EVENTSTORE_LOG_LEVEL", "INFO")
    default_page_size: int = int(os.getenv("EVENTSTORE_DEFAULT_PAGE_SIZE", "1000"))

settings = Settings()
