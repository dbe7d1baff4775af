from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./regdesk.db"

    # Comma-separated allow-list; the identity proxy puts the caller's email
    # in auth_email_header after the OAuth login.
    admin_emails: str = ""
    auth_email_header: str = "X-Auth-Request-Email"

    google_service_account_email: str = ""
    google_private_key: str = ""
    google_sheet_id: str = ""

    sheets_sync_enabled: bool = True
    auto_sync_enabled: bool = False
    sync_interval_seconds: int = 5
    sheets_timezone: str = "Asia/Kolkata"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def admin_email_list(self) -> List[str]:
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]

    @property
    def sheets_configured(self) -> bool:
        return bool(
            self.google_service_account_email
            and self.google_private_key
            and self.google_sheet_id
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
