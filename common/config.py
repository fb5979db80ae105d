from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IndexConfig(BaseModel):
    path: Path = Path("data/index.jsonl")


class ExportConfig(BaseModel):
    output_dir: Path = Path(".")
    page_size: int = Field(default=1000, ge=1)
    filename_format: str = "%d-%m-%Y_%H-%M.csv"
    link_template: str = "https://ordinals.com/inscription/{id}"
    decode_errors: str = Field(default="replace", pattern="^(replace|skip|strict)$")
    show_progress: bool = True


class DedupConfig(BaseModel):
    mode: str = Field(default="exact", pattern="^(exact|bloom)$")
    capacity: int = Field(default=1_000_000, ge=1)
    error_rate: float = Field(default=0.001, gt=0.0, lt=1.0)


class GlobalYAMLConfig(BaseModel):
    index: IndexConfig = Field(default_factory=IndexConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    dedup: DedupConfig = Field(default_factory=DedupConfig)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EXPORT_", env_file=".env", extra="ignore"
    )

    config_path: Path = Path("config/config.yaml")
    index_path: Path | None = None
    log_level: str = "WARNING"


def load_yaml_config(path: Path = Path("config/config.yaml")) -> GlobalYAMLConfig:
    """
    Load the YAML config. A missing file yields the defaults so the exporter
    can run from any working directory.
    """
    if not Path(path).exists():
        return GlobalYAMLConfig()
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    return GlobalYAMLConfig(**raw)


settings = Settings()
yaml_config = load_yaml_config(settings.config_path)
