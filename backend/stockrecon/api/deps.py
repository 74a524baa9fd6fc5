"""Shared FastAPI dependencies for the outbound integrations.

Routes take the POS client and notifier through these so tests can swap in
fakes with ``app.dependency_overrides``.
"""

from typing import Annotated, Optional

from fastapi import Depends

from stockrecon.services.notification_service import TelegramNotifier, get_notifier
from stockrecon.services.pos import PosterClient, get_pos_client


def pos_client() -> Optional[PosterClient]:
    return get_pos_client()


def notifier() -> Optional[TelegramNotifier]:
    return get_notifier()


PosClient = Annotated[Optional[PosterClient], Depends(pos_client)]
Notifier = Annotated[Optional[TelegramNotifier], Depends(notifier)]
