from typing import Optional


class InsightsError(Exception):
    """Base error for insight generation, carrying an HTTP status and a user-safe message."""

    status_code: int = 500
    default_user_message: str = "Something went wrong while generating insights. Please try again later."

    def __init__(self, message: str, status_code: Optional[int] = None, user_message: Optional[str] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.user_message = user_message or self.default_user_message
        super().__init__(self.message)


class InsufficientDataError(InsightsError):
    status_code = 422
    default_user_message = "Not enough journal entries yet. Keep writing and try again soon."

    def __init__(self, entry_count: int, min_entries: int):
        self.entry_count = entry_count
        self.min_entries = min_entries
        super().__init__(
            f"Need at least {min_entries} journal entries to generate insights, found {entry_count}"
        )


class ExtractionError(InsightsError):
    status_code = 502
    default_user_message = "We couldn't analyze your entries right now. Please try again later."


class InsightRunInProgressError(InsightsError):
    status_code = 409
    default_user_message = "Insights are already being generated. Please wait a moment."


class WeeklyLimitReachedError(InsightsError):
    status_code = 429
    default_user_message = "Insights were already generated this week. Check back next Monday."
