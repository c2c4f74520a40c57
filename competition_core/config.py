from __future__ import annotations

import os

from pydantic import BaseModel, Field


class CoreSettings(BaseModel):
    # Prize pool floor used when neither the competition nor its organization sets one
    default_prize_minimum: float = Field(
        float(os.getenv("COMPETITION_DEFAULT_PRIZE_MINIMUM", "1000")), ge=0
    )
    # Bottom share of the leaderboard flagged as the danger zone
    elimination_threshold: float = Field(
        float(os.getenv("COMPETITION_ELIMINATION_THRESHOLD", "0.2")), ge=0, le=1
    )
    # Pending real-time events per view (0 = unbounded); overflow marks the snapshot stale
    inbox_maxsize: int = Field(int(os.getenv("COMPETITION_INBOX_MAXSIZE", "0")), ge=0)


settings = CoreSettings()
