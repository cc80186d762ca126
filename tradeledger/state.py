"""Application state and competition configuration for the API server."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass
class CompetitionConfig:
    """Settings of a trading competition."""

    target_builder: str | None = None
    builder_only: bool = False
    competition_users: list[str] = field(default_factory=list)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CompetitionConfig:
        """Read TARGET_BUILDER, BUILDER_ONLY and COMPETITION_USERS.

        Addresses are lower-cased; COMPETITION_USERS is comma separated and
        empty entries are dropped. ``environ`` defaults to the process environment.
        """
        env = os.environ if environ is None else environ

        target = env.get("TARGET_BUILDER")
        target_builder = None if target is None else target.lower()

        builder_only = env.get("BUILDER_ONLY", "").lower() == "true"

        users_text = env.get("COMPETITION_USERS")
        competition_users = []
        if users_text is not None:
            competition_users = [
                address
                for address in (part.strip().lower() for part in users_text.split(","))
                if address
            ]

        return cls(
            target_builder=target_builder,
            builder_only=builder_only,
            competition_users=competition_users,
        )

    def is_configured(self) -> bool:
        """Whether any competition users are set."""
        return bool(self.competition_users)

    def is_builder_only(self) -> bool:
        """Whether builder-only mode is on and a target builder is set."""
        return self.builder_only and self.target_builder is not None

    def user_count(self) -> int:
        """Number of competition users."""
        return len(self.competition_users)


@dataclass
class AppState:
    """State shared by the API handlers."""

    indexer: Any
    competition_config: CompetitionConfig = field(default_factory=CompetitionConfig)