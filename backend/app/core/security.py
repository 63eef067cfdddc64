"""
Caller authentication from Telegram WebApp init data.

The Mini App front end sends the raw `initData` string in the
`X-Telegram-Init-Data` header. It is a query string signed by Telegram:

  secret_key = HMAC_SHA256(key="WebAppData", msg=bot_token)
  hash       = hex(HMAC_SHA256(key=secret_key, msg=data_check_string))

where `data_check_string` is every field except `hash`, sorted by key and
joined as `key=value` lines. `auth_date` bounds how old the payload may be.
"""

import hashlib
import hmac
import time
from typing import Optional
from urllib.parse import parse_qsl

from fastapi import Depends, Header, HTTPException, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.db.session import get_db
from app.schemas.user import TelegramUser
from app.services.user_service import get_admin

logger = get_logger(__name__)

INIT_DATA_HEADER = "X-Telegram-Init-Data"


class InitDataError(ValueError):
    """Init data is malformed, unsigned, tampered with or expired."""


def _secret_key(bot_token: str) -> bytes:
    return hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()


def sign_init_data(fields: dict[str, str], bot_token: str) -> str:
    """Compute the `hash` Telegram would attach to `fields`."""
    data_check_string = "\n".join(f"{key}={value}" for key, value in sorted(fields.items()))
    return hmac.new(_secret_key(bot_token), data_check_string.encode(), hashlib.sha256).hexdigest()


def parse_init_data(
    init_data: str,
    bot_token: str,
    max_age: int,
    verify: bool = True,
    now: Optional[float] = None,
) -> Optional[TelegramUser]:
    """Validate init data and return the embedded user, if any."""
    fields = dict(parse_qsl(init_data, keep_blank_values=True))
    received_hash = fields.pop("hash", None)

    if verify:
        if not received_hash:
            raise InitDataError("hash is missing")
        if not hmac.compare_digest(sign_init_data(fields, bot_token), received_hash):
            raise InitDataError("signature mismatch")
        try:
            auth_date = int(fields.get("auth_date", ""))
        except ValueError:
            raise InitDataError("auth_date is missing or malformed") from None
        current = time.time() if now is None else now
        if max_age and current - auth_date > max_age:
            raise InitDataError("init data expired")

    user_json = fields.get("user")
    if not user_json:
        return None
    try:
        return TelegramUser.model_validate_json(user_json)
    except ValidationError as e:
        raise InitDataError("user field is malformed") from e


async def get_current_user(
    init_data: Optional[str] = Header(None, alias=INIT_DATA_HEADER),
) -> TelegramUser:
    """Dependency: the authenticated Telegram user of this request."""
    if not init_data:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {INIT_DATA_HEADER} header",
        )

    settings = get_settings()
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.error("init_data_validation_unconfigured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Bot token not configured",
        )

    verify = not (settings.ENVIRONMENT == "development" and settings.INIT_DATA_SKIP_VALIDATION)
    try:
        user = parse_init_data(
            init_data,
            settings.TELEGRAM_BOT_TOKEN,
            settings.INIT_DATA_MAX_AGE,
            verify=verify,
        )
    except InitDataError as e:
        logger.warning("init_data_rejected", reason=str(e))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid Telegram init data",
        )

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found in init data",
        )
    return user


async def require_admin(
    user: TelegramUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TelegramUser:
    """Dependency: the caller must be registered in the admins table."""
    admin = await get_admin(db, user.id)
    if admin is None:
        logger.warning("admin_access_denied", telegram_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
