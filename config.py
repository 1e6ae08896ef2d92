"""Storefront application settings."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from common.config import AppConfig, load_env


@dataclass
class StorefrontConfig:
    """Paths of the web application plus the shared ``AppConfig``."""

    app: AppConfig
    project_root: Path

    @property
    def secret_key(self) -> str:
        return self.app.secret_key

    @property
    def template_dir(self) -> Path:
        return self.project_root / "templates"

    @property
    def static_dir(self) -> Path:
        return self.project_root / "static"

    @property
    def data_dir(self) -> Path:
        return self.project_root / "data"

    @property
    def cart_snapshot_file(self) -> Path:
        path = Path(self.app.cart_snapshot_file)
        return path if path.is_absolute() else self.project_root / path

    @classmethod
    def load(cls, database_url: Optional[str] = None) -> "StorefrontConfig":
        """Build settings from settings.json/environment and create the data dir."""

        app = load_env()
        if database_url:
            app = replace(app, database_url=database_url)
        config = cls(app=app, project_root=Path(__file__).resolve().parent)
        config.data_dir.mkdir(parents=True, exist_ok=True)
        return config
