"""InitService: create a forumkit data root."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from forumkit.config.discovery import CONFIG_FILENAME
from forumkit.infrastructure.database.engine import DATA_DIRNAME, DB_FILENAME, init_database
from forumkit.services.result import ErrorCode, ServiceResult
from forumkit.services.telemetry import traced

logger = logging.getLogger(__name__)


class InitService:
    """Stateless: runs before any Store exists."""

    @staticmethod
    @traced
    def init_forum(path: Path, *, title: str = "Forums", force: bool = False) -> ServiceResult:
        """Write a sparse ``forumkit.toml`` and create the database under *path*."""
        op = "init_forum"
        config_path = path / CONFIG_FILENAME
        if config_path.exists() and not force:
            return ServiceResult.failure(
                op,
                ErrorCode.VALIDATION_FAILED,
                f"{config_path} already exists (use --force to overwrite)",
            )

        path.mkdir(parents=True, exist_ok=True)
        # JSON string syntax is a valid TOML basic string
        config_path.write_text(f"[forum]\ntitle = {json.dumps(title)}\n", encoding="utf-8")
        engine = init_database(path)
        engine.dispose()

        logger.info("Initialized forum data root at %s", path)
        return ServiceResult(
            ok=True,
            op=op,
            data={
                "path": str(path),
                "config": str(config_path),
                "database": str(path / DATA_DIRNAME / DB_FILENAME),
                "title": title,
            },
        )
