from spa_manager.adapters.spa_adapter import MockSpaAdapter, RealSpaAdapter
from spa_manager.clients.spa_client import SpaApiClient
from spa_manager.config import get_settings

_real_client: SpaApiClient | None = None


def get_spa_adapter():
    global _real_client
    settings = get_settings()
    if settings.spa_api_mode.lower() == 'real':
        if _real_client is None:
            _real_client = SpaApiClient(
                base_url=settings.spa_api_base_url,
                token=settings.spa_api_token,
                verify_tls=settings.spa_api_verify_tls,
                timeout_s=settings.spa_api_timeout_s,
            )
        return RealSpaAdapter(_real_client)
    return MockSpaAdapter()


def close_spa_resources() -> None:
    global _real_client
    if _real_client is not None:
        _real_client.close()
        _real_client = None
