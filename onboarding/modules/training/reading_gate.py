import math
from pydantic import BaseModel

from onboarding.core.exceptions import ValidationError

DEFAULT_COMPLETION_PERCENT = 90.0


class ReadingProgressResult(BaseModel):
    progress_percentage: float
    completed: bool


class ReadingGate(BaseModel):
    """Scroll tracker for one reading session. No seek-back rule applies here."""
    progress_percentage: float = 0.0
    completion_percent: float = DEFAULT_COMPLETION_PERCENT

    def report_scroll(self, scroll_top: float, scroll_height: float, client_height: float) -> ReadingProgressResult:
        for name, value in (
            ("scroll_top", scroll_top),
            ("scroll_height", scroll_height),
            ("client_height", client_height),
        ):
            if not math.isfinite(value) or value < 0:
                raise ValidationError(f"{name} must be a finite, non-negative number")

        scrollable = scroll_height - client_height
        if scrollable <= 0:
            # Content fits in the viewport.
            pct = 100.0
        else:
            pct = min(100.0, max(0.0, 100.0 * scroll_top / scrollable))

        self.progress_percentage = pct
        return ReadingProgressResult(progress_percentage=pct, completed=pct > self.completion_percent)
