from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    app_name: str = 'SPA Manager Reporting API'
    env: str = 'dev'

    spa_api_base_url: str = Field(default='http://localhost:8000/api', alias='SPA_API_BASE_URL')
    spa_api_token: str = Field(default='', alias='SPA_API_TOKEN')
    spa_api_verify_tls: bool = Field(default=True, alias='SPA_API_VERIFY_TLS')
    spa_api_timeout_s: float = Field(default=20.0, alias='SPA_API_TIMEOUT_S')
    spa_api_mode: str = Field(default='mock', alias='SPA_API_MODE')
    spa_api_slow_threshold_ms: int = Field(default=2000, alias='SPA_API_SLOW_THRESHOLD_MS')

    redis_url: str = Field(default='redis://redis:6379/0', alias='REDIS_URL')
    cache_enabled: bool = Field(default=True, alias='CACHE_ENABLED')
    dashboard_cache_ttl_s: int = Field(default=60, alias='DASHBOARD_CACHE_TTL_S')
    database_url: str = Field(default='sqlite:///./spa_manager.db', alias='DATABASE_URL')
    spa_profile: bool = Field(default=False, alias='SPA_PROFILE')
    default_tz: str = Field(default='America/New_York', alias='DEFAULT_TZ')

    cors_allow_origins: str = Field(default='*', alias='CORS_ALLOW_ORIGINS')
    cors_allow_methods: str = Field(default='*', alias='CORS_ALLOW_METHODS')
    cors_allow_headers: str = Field(default='*', alias='CORS_ALLOW_HEADERS')
    cors_allow_credentials: bool = Field(default=False, alias='CORS_ALLOW_CREDENTIALS')

    celery_broker_url: str = Field(default='redis://redis:6379/0', alias='CELERY_BROKER_URL')
    celery_result_backend: str = Field(default='redis://redis:6379/1', alias='CELERY_RESULT_BACKEND')


@lru_cache
def get_settings() -> Settings:
    return Settings()
