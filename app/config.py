from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'School Administration'
    app_env: str = 'local'
    app_timezone: str = 'Asia/Jakarta'
    database_url: str = 'sqlite:///./school.db'
    db_busy_timeout_seconds: int = 15
    auth_secret: str = 'change-me'
    auth_session_expiry_hours: int = 12
    app_base_url: str = 'http://127.0.0.1:8000'
    frontend_base_url: str = 'http://localhost:4200'
    upload_root: str = './uploads'
    max_upload_bytes: int = 10 * 1024 * 1024
    folder_allowed_mime_types: str = (
        'application/pdf,'
        'application/msword,'
        'application/vnd.openxmlformats-officedocument.wordprocessingml.document,'
        'application/vnd.ms-excel,'
        'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet,'
        'application/vnd.ms-powerpoint,'
        'application/vnd.openxmlformats-officedocument.presentationml.presentation,'
        'image/jpeg,image/png,image/gif,text/plain'
    )
    recent_access_limit: int = 10
    principal_seed_email: str = 'principal@example.com'
    principal_seed_name: str = 'Principal'
    cache_backend: str = 'memory'
    cache_redis_url: str | None = None
    default_cache_ttl: int = 60
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200


settings = Settings()
