"""
Assignment reminders: count active assignments, push one reminder to every registered device token,
then prune the tokens FCM rejected.

Runs from two cron jobs (weekday evening, weekend afternoon) that share this exact routine.
Store and transport errors propagate to the caller; only individual prune deletions (database errors)
are log-and-continue.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError

from app.core.constants import LOG_TOKEN_PREFIX, REMINDER_DATA_TYPE, REMINDER_TEMPLATES
from app.services.fcm import BatchResponse, MulticastMessage

logger = logging.getLogger(__name__)

SKIP_NO_ASSIGNMENTS = "no_active_assignments"
SKIP_NO_TOKENS = "no_tokens"


class ReminderStore(Protocol):
    def get_active_assignments(self, today: str) -> list[Any]: ...

    def list_user_ids(self) -> list[str]: ...

    def get_tokens_for_user(self, user_id: str) -> list[str]: ...

    def delete_tokens(self, token: str) -> int: ...


class MulticastTransport(Protocol):
    def send_each_for_multicast(self, message: MulticastMessage) -> BatchResponse: ...


@dataclass
class DispatchResult:
    success: bool = True
    sent_count: int = 0
    failed_count: int = 0
    pruned_count: int = 0
    skipped: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "sentCount": self.sent_count,
            "failedCount": self.failed_count,
            "prunedCount": self.pruned_count,
            "skipped": self.skipped,
        }


def today_iso(tz_name: str, now: datetime | None = None) -> str:
    """
    Today's date in tz_name as zero-padded YYYY-MM-DD.
    A naive now is read as wall-clock time in tz_name; an aware one is converted to tz_name.
    """
    tz = ZoneInfo(tz_name)
    if now is None:
        now = datetime.now(tz)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    else:
        now = now.astimezone(tz)
    return now.date().isoformat()


def build_reminder_message(count: int, tokens: list[str], locale: str = "ja") -> MulticastMessage:
    template = REMINDER_TEMPLATES[locale]
    return MulticastMessage(
        title=template["title"],
        body=template["body"].format(count=count),
        tokens=list(tokens),
        data={"type": REMINDER_DATA_TYPE, "count": str(count)},
    )


class NotificationDispatcher:
    """One reminder run: load, compose, send, prune, report."""

    def __init__(self, store: ReminderStore, transport: MulticastTransport, *, locale: str = "ja"):
        self.store = store
        self.transport = transport
        self.locale = locale

    def _collect_tokens(self) -> list[str]:
        tokens: list[str] = []
        for user_id in self.store.list_user_ids():
            tokens.extend(self.store.get_tokens_for_user(user_id))
        return tokens

    def _prune(self, failed_tokens: list[str]) -> int:
        pruned = 0
        # one token string may fail more than once when stored under several users
        for token in dict.fromkeys(failed_tokens):
            try:
                deleted = self.store.delete_tokens(token)
            except SQLAlchemyError as e:
                logger.warning("Could not delete invalid token %s...: %s", token[:LOG_TOKEN_PREFIX], e)
                continue
            if deleted:
                logger.info("Deleted invalid token %s... (%s rows)", token[:LOG_TOKEN_PREFIX], deleted)
            pruned += deleted
        return pruned

    def dispatch(self, today: str) -> DispatchResult:
        assignments = self.store.get_active_assignments(today)
        if not assignments:
            logger.debug("No active assignments (due >= %s); skipping reminder", today)
            return DispatchResult(skipped=SKIP_NO_ASSIGNMENTS)
        count = len(assignments)
        logger.info("Found %s active assignments (due >= %s)", count, today)

        tokens = self._collect_tokens()
        if not tokens:
            logger.debug("No device tokens registered; skipping reminder")
            return DispatchResult(skipped=SKIP_NO_TOKENS)
        logger.info("Sending assignment reminder to %s tokens", len(tokens))

        message = build_reminder_message(count, tokens, self.locale)
        batch = self.transport.send_each_for_multicast(message)
        result = DispatchResult(sent_count=batch.success_count, failed_count=batch.failure_count)
        logger.info("Reminder sent: %s succeeded, %s failed", result.sent_count, result.failed_count)

        if result.failed_count > 0:
            failed_tokens = []
            for token, resp in zip(tokens, batch.responses):
                if not resp.success:
                    failed_tokens.append(token)
                    invalid = resp.error is not None and resp.error.is_invalid_token
                    kind = "invalid token" if invalid else "transient"
                    logger.warning(
                        "Send failed for token %s... (%s): %s", token[:LOG_TOKEN_PREFIX], kind, resp.error
                    )
            result.pruned_count = self._prune(failed_tokens)
        return result
