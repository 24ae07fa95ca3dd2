# Lexicite – Citable legislation retrieval for compliance assistants
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Central configuration – configurable via:
1. Environment variables (LEXICITE_ prefix)
2. .env file
3. <data_path>/config.json (persisted overrides, e.g. generated secrets)
"""
import json
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEXICITE_", env_file=".env", extra="ignore")

    # ── Storage ──────────────────────────────────
    data_path: str = "/data"
    persist_store: bool = True
    docs_path: str = ""  # optional seed directory: <docs_path>/<sector>/<file>

    # ── Chunking (legal preset) ──────────────────
    chunk_size: int = 800
    chunk_overlap: int = 150
    min_chunk_chars: int = 50
    insert_batch_size: int = 100

    # ── Search ───────────────────────────────────
    bm25_k1: float = 1.5
    bm25_b: float = 0.75
    default_top_k: int = 5
    default_min_score: float = 0.1
    hybrid_weight: float = 2.0
    hybrid_fallback_min_results: int = 3

    # ── Freshness monitor ────────────────────────
    http_user_agent: str = "Lexicite-Compliance-Monitor/1.0"
    http_timeout: float = 20.0
    monitor_auto_apply: bool = False

    # ── Trigger secrets ──────────────────────────
    webhook_secret: str = ""
    cron_secret: str = ""

    # ── Server / Transport ───────────────────────
    transport: Literal["stdio", "sse"] = "sse"
    sse_port: int = 8081
    web_port: int = 8080

    @property
    def config_file(self) -> Path:
        return Path(self.data_path) / "config.json"

    @property
    def store_file(self) -> Path | None:
        return Path(self.data_path) / "store.json" if self.persist_store else None

    @classmethod
    def load(cls) -> "Config":
        """Load config: ENV -> .env -> config.json overrides."""
        config = cls()

        if config.config_file.exists():
            try:
                overrides = json.loads(config.config_file.read_text())
                for key, value in overrides.items():
                    if hasattr(config, key) and value != "":
                        setattr(config, key, value)
            except (OSError, ValueError) as e:
                print(f"Warning: Config file error: {e}")

        return config

    def save(self):
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(
            json.dumps(self.model_dump(), indent=2, default=str)
        )

    def to_safe_dict(self) -> dict:
        """Config without secrets (for status endpoints)."""
        d = self.model_dump()
        for key in ("webhook_secret", "cron_secret"):
            if d.get(key):
                d[key] = "***set***"
        return d
