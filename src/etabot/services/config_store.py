from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..constants import CONFIG_DOCUMENT
from ..moderation.config_schema import (
    BotConfig,
    ValidationIssue,
    load_config_document,
    merge_config,
    validate_config,
)
from .document_store import DocumentStore

log = logging.getLogger("etabot.config_store")


class ConfigStore:
    """Owns the in-memory config and its persisted copy.

    ``current`` is an immutable snapshot; updates replace it only after the
    new document has been saved.
    """

    def __init__(self, documents: DocumentStore) -> None:
        self._documents = documents
        self._lock = asyncio.Lock()
        self._config = BotConfig()

    @property
    def current(self) -> BotConfig:
        return self._config

    async def load(self) -> BotConfig:
        async with self._lock:
            doc = await self._documents.load(CONFIG_DOCUMENT)
            if doc is None:
                log.info("No stored config; writing defaults")
                config = BotConfig()
                await self._documents.save(CONFIG_DOCUMENT, config.to_dict())
            else:
                config, issues = load_config_document(doc)
                for issue in issues:
                    log.warning("Stored config invalid at %s: %s", issue.path, issue.message)
                if issues:
                    log.warning("Falling back to default config until it is fixed through the admin API")
            self._config = config
            return config

    async def update(self, partial: dict[str, Any]) -> list[ValidationIssue]:
        """Merge, validate and persist an update. Returns issues; empty means applied."""
        async with self._lock:
            doc = merge_config(self._config, partial)
            issues = validate_config(doc)
            if issues:
                return issues
            updated = BotConfig.from_dict(doc)
            await self._documents.save(CONFIG_DOCUMENT, updated.to_dict())
            self._config = updated
            log.info("Config updated (fields: %s)", ", ".join(sorted(partial)) or "none")
            return []
