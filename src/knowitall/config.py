"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "KNOWITALL_"


class Settings(BaseModel):
    app_name:         str = "knowitall"
    db_url:           str = "sqlite:///knowitall.db"
    storage_dir:      str = Field(default=".knowitall/storage", description="Root directory of the local object store")
    public_base_url:  str = Field(default="http://localhost:8000/storage/v1/object/public",
                                  description="Base URL objects are served from; bucket and path are appended")
    inline_bucket:    str = Field(default="blog-images", description="Bucket for images embedded in post bodies")
    cover_bucket:     str = Field(default="blog-covers", description="Bucket for post cover images")
    max_upload_bytes: int = Field(default=5 * 1024 * 1024, ge=1, description="Largest accepted image upload")
    max_history:      int = Field(default=100, ge=0, description="Undo snapshots kept per session; 0 = unbounded")
    max_tags:         int = Field(default=0,   ge=0, description="Max tags per post; 0 = unlimited")
    excerpt_length:   int = Field(default=200, ge=1, description="Characters of plain text kept in the excerpt")
    parser_config:    str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    author_id:        str = Field(default="anonymous", description="Author id recorded on published posts")
    output_dir:       str = Field(default="dist", description="Directory for exported HTML/MD files")
    log_level:        str = Field(default="INFO", pattern="^(TRACE|DEBUG|INFO|SUCCESS|WARNING|ERROR|CRITICAL)$")


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then KNOWITALL_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
