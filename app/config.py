from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    ENV: str = "local"

    api_base_url: str = "http://localhost:5004/api"
    api_timeout: float = 15

    database_url: str = "sqlite:///./storefront.db"

    session_cookie_name: str = "storefront_session"
    max_sessions: int = 1000

    currency: str = "INR"
    default_country: str = "India"
    free_shipping_threshold: float = 999
    shipping_fee: float = 99
    recently_viewed_limit: int = 10

    RAZORPAY_KEY_ID: str = ""
    gateway_script_url: str = "https://checkout.razorpay.com/v1/checkout.js"
    gateway_probe_enabled: bool = True

    store_name: str = "AutoParts Store"
    support_email: str = "support@autoparts.example"

    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
    ]

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
