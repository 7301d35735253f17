"""Push notification registration: FCM tokens for assignment reminders."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.constants import LOG_TOKEN_PREFIX
from app.db.session import get_db
from app.repos.notification_store import NotificationStore

router = APIRouter()
logger = logging.getLogger(__name__)


class PushTokenBody(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128, description="Auth uid of the signed-in user")
    token: str = Field(..., min_length=1, max_length=512, description="FCM registration token from the browser")


@router.post("/push/register")
def register_push_token(body: PushTokenBody, db: Session = Depends(get_db)):
    """
    Register a browser for assignment reminders.
    Call after notification permission is granted and the FCM token is issued.
    Idempotent: same user + token only refreshes updated_at.
    """
    user_id = body.user_id.strip()
    token = body.token.strip()
    if not user_id or not token:
        raise HTTPException(status_code=400, detail="user_id and token must not be blank")
    row = NotificationStore(db).upsert_token(user_id, token)
    db.commit()
    logger.info("Registered push token %s... for user=%s", token[:LOG_TOKEN_PREFIX], user_id)
    return {"ok": True, "id": row.id}


@router.delete("/push/register")
def unregister_push_token(body: PushTokenBody, db: Session = Depends(get_db)):
    """Remove one browser's token (user turned notifications off or signed out)."""
    removed = NotificationStore(db).remove_user_token(body.user_id.strip(), body.token.strip())
    if not removed:
        raise HTTPException(status_code=404, detail="Token not registered for this user")
    db.commit()
    return {"ok": True}
