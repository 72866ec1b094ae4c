from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

StoreBackend = Literal["json", "chroma"]


class Settings(BaseSettings):
    store_backend: StoreBackend = Field(default="json")
    store_path: Path = Field(default=Path(".record_kb/chunks.json"))
    chroma_dir: Path = Field(default=Path(".record_kb/chroma"))
    collection_name: str = Field(default="record_chunks")
    # Chunking / retrieval knobs
    char_limit: int = Field(default=900, gt=0)
    top_k: int = Field(default=4, gt=0)
    summary_limit: int = Field(default=10, gt=0)
    # Width of the placeholder vector Chroma needs per record
    embedding_dim: int = Field(default=64, gt=0)
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="RKB_",  # RKB_STORE_BACKEND, RKB_STORE_PATH, RKB_CHAR_LIMIT, ...
    )

    # Tolerate "Chroma", " json " and similar spellings from the environment
    @field_validator("store_backend", mode="before")
    @classmethod
    def _normalize_backend(cls, v):  # type: ignore[no-untyped-def]
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):  # type: ignore[no-untyped-def]
        if isinstance(v, str):
            return v.strip().upper()
        return v


# Cached accessor shared by the CLI and composition helpers
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
