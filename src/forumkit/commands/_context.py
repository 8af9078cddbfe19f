"""AppContext: shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Provides lazy Store initialization, entity lookups
shared by several commands, and centralized result emission
(stdout/stderr routing + exit codes).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from forumkit.output.formatters import OutputSettings, format_result

if TYPE_CHECKING:
    from forumkit.config.settings import ForumSettings
    from forumkit.domain.models import Forum, Post, Topic, User
    from forumkit.infrastructure.store import Store
    from forumkit.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy.

    Subcommands access it via ``@click.pass_obj``. The store is lazily
    initialized on first use so ``--help`` and ``--version`` never
    trigger database access.
    """

    def __init__(self, settings: ForumSettings) -> None:
        self.settings = settings
        self._store: Store | None = None

        # Configure structured logging
        from forumkit.config.logging import configure_logging

        configure_logging(
            verbose=settings.verbose, log_json=settings.log_json, tenant=settings.tenant.id
        )

        # Enable telemetry context var when verbose
        if settings.verbose:
            from forumkit.services.telemetry import enable_telemetry

            enable_telemetry()

    @property
    def store(self) -> Store:
        """The store instance (created lazily on first access)."""
        if self._store is None:
            from forumkit.infrastructure.store import Store

            self._store = Store(self.settings)
            self._store.init_event_bus(sync=self.settings.sync)
        return self._store

    def close(self) -> None:
        """Flush background work and events. Registered as a context close callback."""
        if self._store is not None:
            self._store.close()
            self._store = None

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
          Warnings are emitted to stderr so they don't pollute piped output.
        * Failure: writes to stderr, exits with code 1.
        """
        settings = OutputSettings(
            json_output=self.settings.json_output,
            quiet=self.settings.quiet,
            verbose=self.settings.verbose,
        )
        output = format_result(result, settings=settings)
        if result.ok:
            click.echo(output)
            # In JSON mode, warnings are already in the serialized payload.
            if not settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)

    # ------------------------------------------------------------------
    # Entity lookups (emit the failure and exit when missing)
    # ------------------------------------------------------------------

    def require_forum(self, forum_id: int) -> Forum:
        from forumkit.domain.models import Forum
        from forumkit.services.forum import ForumService

        result = ForumService(self.store).get_forum(forum_id)
        self._exit_on_failure(result)
        return Forum.model_validate(result.data["forum"])

    def require_user(self, user_id: int) -> User:
        from forumkit.domain.models import User
        from forumkit.services.users import UserService

        result = UserService(self.store).get_user(user_id)
        self._exit_on_failure(result)
        return User.model_validate(result.data["user"])

    def require_topic(self, topic_id: int) -> Topic:
        from forumkit.domain.models import Topic
        from forumkit.services.topics import TopicService

        result = TopicService(self.store).get_topic(topic_id)
        self._exit_on_failure(result)
        return Topic.model_validate(result.data["topic"])

    def require_post(self, post_id: int) -> Post:
        from forumkit.domain.models import Post
        from forumkit.services.topics import TopicService

        result = TopicService(self.store).get_post(post_id)
        self._exit_on_failure(result)
        return Post.model_validate(result.data["post"])

    def _exit_on_failure(self, result: ServiceResult) -> None:
        if not result.ok:
            self.emit(result)
