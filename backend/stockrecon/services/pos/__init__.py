# POS integration module

from typing import Optional

from stockrecon.core.config import settings
from stockrecon.services.pos.poster_client import PosterClient, parse_close_date


def get_pos_client() -> Optional[PosterClient]:
    """Build the PosterPOS client from settings, or None when unconfigured."""
    if not settings.poster_configured:
        return None
    return PosterClient()


__all__ = ["PosterClient", "get_pos_client", "parse_close_date"]
