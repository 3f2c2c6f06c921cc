from typing import Optional

from fastapi import Header

from riskguard.config.settings import settings


async def get_actor(
    x_actor: Optional[str] = Header(default=None, description="Underwriter recorded as decided_by / audit actor"),
) -> str:
    """
    Attribution only, not authentication: the caller names who is acting and
    the value is stamped onto decisions and audit events.
    """
    actor = (x_actor or "").strip()
    return actor or settings.DEFAULT_ACTOR
