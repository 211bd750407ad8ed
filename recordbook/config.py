from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'Recordbook'
    app_env: str = 'local'
    app_timezone: str = 'Asia/Seoul'
    database_url: str = 'sqlite:///./recordbook.db'
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200
    admin_key_iterations: int = 120000
    require_registered_teachers: bool = False
    seed_demo_data: bool = False
    demo_collection_code: str = 'test'


settings = Settings()
