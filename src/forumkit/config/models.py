"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, forumkit.toml only contains overrides.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ForumConfig(BaseModel):
    """[forum] section."""

    model_config = {"frozen": True}

    title: str = "Forums"
    topics_per_page: int = Field(default=20, ge=1)
    posts_per_page: int = Field(default=20, ge=1)


class TextConfig(BaseModel):
    """[text] section."""

    model_config = {"frozen": True}

    censor_words: list[str] = Field(default_factory=list)
    censor_char: str = "*"


class EventsConfig(BaseModel):
    """[events] section."""

    model_config = {"frozen": True}

    max_retries: int = 3
    max_workers: int = 2


class BackgroundConfig(BaseModel):
    """[background] section."""

    model_config = {"frozen": True}

    max_workers: int = 2


class TenantConfig(BaseModel):
    """[tenant] section."""

    model_config = {"frozen": True}

    id: str = "default"


class ForumkitConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    forum: ForumConfig = Field(default_factory=ForumConfig)
    text: TextConfig = Field(default_factory=TextConfig)
    events: EventsConfig = Field(default_factory=EventsConfig)
    background: BackgroundConfig = Field(default_factory=BackgroundConfig)
    tenant: TenantConfig = Field(default_factory=TenantConfig)
