import math
from typing import Optional
from pydantic import BaseModel, Field

from onboarding.core.exceptions import ValidationError

DEFAULT_SEEK_TOLERANCE_SECONDS = 2.0
DEFAULT_COMPLETION_RATIO = 0.95


class VideoProgressResult(BaseModel):
    """Outcome of one playback sample."""
    seek_to: Optional[float] = Field(None, description="Position the player must jump back to, if the sample was rejected")
    completed: bool = False
    watched_percentage: float = 0.0


class VideoGate(BaseModel):
    """
    Playback tracker for one viewing session of one video module.

    The learner may never move further than `seek_tolerance_seconds` past the
    furthest point already watched. Completion is declared once the reported
    position reaches `completion_ratio` of the duration.
    """
    played_seconds: float = 0.0
    max_watched_seconds: float = 0.0
    duration_seconds: float = 0.0
    seek_tolerance_seconds: float = DEFAULT_SEEK_TOLERANCE_SECONDS
    completion_ratio: float = DEFAULT_COMPLETION_RATIO

    def report_progress(self, played_seconds: float, duration_seconds: float) -> VideoProgressResult:
        if not math.isfinite(played_seconds) or played_seconds < 0:
            raise ValidationError("played_seconds must be a finite, non-negative number")
        if not math.isfinite(duration_seconds) or duration_seconds < 0:
            raise ValidationError("duration_seconds must be a finite, non-negative number")

        self.duration_seconds = duration_seconds

        if (
            self.max_watched_seconds > 0
            and played_seconds > self.max_watched_seconds + self.seek_tolerance_seconds
        ):
            return VideoProgressResult(
                seek_to=self.max_watched_seconds,
                completed=False,
                watched_percentage=self._percentage(self.max_watched_seconds),
            )

        self.played_seconds = played_seconds
        self.max_watched_seconds = max(self.max_watched_seconds, played_seconds)

        # Duration is 0 until the player has loaded metadata.
        completed = duration_seconds > 0 and played_seconds / duration_seconds >= self.completion_ratio
        return VideoProgressResult(
            seek_to=None,
            completed=completed,
            watched_percentage=self._percentage(played_seconds),
        )

    def _percentage(self, seconds: float) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        return min(100.0, 100.0 * seconds / self.duration_seconds)
