"""Repository for assignments and device tokens: the reads and deletes the reminder dispatcher needs."""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.models.assignment import Assignment
from app.models.device_token import DeviceToken
from app.models.user import User

logger = logging.getLogger(__name__)


class NotificationStore:
    """Query and prune operations over users, assignments and device tokens. Callers own the commit."""

    def __init__(self, db: Session):
        self.db = db

    def get_active_assignments(self, today: str) -> list[Assignment]:
        """Assignments with due_date >= today. Plain string comparison, so today must be zero-padded YYYY-MM-DD."""
        return (
            self.db.query(Assignment)
            .filter(Assignment.due_date >= today)
            .order_by(Assignment.due_date.asc(), Assignment.id.asc())
            .all()
        )

    def list_user_ids(self) -> list[str]:
        return [row.id for row in self.db.query(User.id).all()]

    def get_tokens_for_user(self, user_id: str) -> list[str]:
        rows = self.db.query(DeviceToken.token).filter(DeviceToken.user_id == user_id).all()
        return [row.token for row in rows]

    def delete_tokens(self, token: str) -> int:
        """
        Delete every device_tokens row with this token, under any user. Returns rows deleted (0 if none).
        Runs in a savepoint: a failed delete is rolled back on its own and the session stays usable.
        """
        with self.db.begin_nested():
            rows = self.db.query(DeviceToken).filter(DeviceToken.token == token).all()
            for row in rows:
                self.db.delete(row)
            if rows:
                self.db.flush()
        return len(rows)

    def upsert_token(self, user_id: str, token: str) -> DeviceToken:
        """
        Register a token under a user. Creates the user row if missing so the token is reachable
        when enumerating users. Same (user, token) again only refreshes updated_at.
        """
        if self.db.get(User, user_id) is None:
            self.db.add(User(id=user_id))
            self.db.flush()
        existing = (
            self.db.query(DeviceToken)
            .filter(DeviceToken.user_id == user_id, DeviceToken.token == token)
            .first()
        )
        if existing:
            existing.updated_at = datetime.now(timezone.utc)
            self.db.flush()
            return existing
        row = DeviceToken(user_id=user_id, token=token)
        self.db.add(row)
        self.db.flush()
        self.db.refresh(row)
        return row

    def remove_user_token(self, user_id: str, token: str) -> bool:
        existing = (
            self.db.query(DeviceToken)
            .filter(DeviceToken.user_id == user_id, DeviceToken.token == token)
            .first()
        )
        if existing is None:
            return False
        self.db.delete(existing)
        self.db.flush()
        return True
