from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    source: Literal["local", "grist"] = "local"
    data_dir: Path = Path(__file__).resolve().parents[1] / "data"

    grist_server: str = "https://docs.getgrist.com"
    grist_doc_id: Optional[str] = None
    grist_api_key: Optional[str] = None
    request_timeout: float = 30.0

    # Table IDs, not display names.
    records_table_id: str = "Utilization"
    people_table_id: str = "People"
    targets_table_id: str = "Utilization_Targets"

    exact_year_only: bool = True
    trend_single_person: bool = True

    model_config = SettingsConfigDict(
        env_prefix="UTIL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
