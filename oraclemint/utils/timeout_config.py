"""Centralized timeout configuration for outbound Scryfall traffic."""
import httpx

from oraclemint.constants import SCRYFALL_HEADERS


def get_scryfall_timeout():
    """Get an httpx timeout configuration for single-record API calls."""
    from config import settings

    return httpx.Timeout(
        connect=settings.external_api_connect_timeout,
        read=settings.external_api_timeout,
        write=settings.external_api_write_timeout,
        pool=5.0
    )

def get_bulk_download_timeout():
    """Get a timeout for bulk downloads; read is per chunk, not the whole body."""
    from config import settings

    return httpx.Timeout(
        connect=settings.external_api_connect_timeout,
        read=settings.bulk_download_read_timeout,
        write=settings.external_api_write_timeout,
        pool=5.0
    )

def get_external_client():
    """Get an httpx.AsyncClient with Scryfall headers and timeouts."""
    return httpx.AsyncClient(
        timeout=get_scryfall_timeout(),
        headers=SCRYFALL_HEADERS,
        follow_redirects=True,
    )
