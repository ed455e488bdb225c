from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./orderbot.db"
    log_level: str = "INFO"

    whatsapp_app_secret: str = ""
    whatsapp_verify_token: str = ""
    system_phone_number_id: str = ""
    system_access_token: str = ""
    graph_api_base_url: str = "https://graph.facebook.com/v18.0"
    whatsapp_send_timeout_seconds: float = 10.0

    openai_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    extraction_timeout_seconds: float = 8.0
    generation_timeout_seconds: float = 6.0

    public_base_url: str = "http://localhost:8000"
    tax_rate_percent: int = 18
    max_typing_delay_seconds: float = 5.0

    redis_url: Optional[str] = None
    customer_lock_timeout_seconds: int = 30

    admin_token: Optional[str] = None
    alert_bot_token: Optional[str] = None
    alert_chat_id: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
