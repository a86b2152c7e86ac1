"""Application configuration for the order fulfillment service"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings."""

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Storefront Orders"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Order lifecycle orchestration for the online store"

    # Security (tokens are issued by the auth service, we only verify them)
    SECRET_KEY: str = Field(default="change-me")
    ALGORITHM: str = "HS256"

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./storefront.db")

    # Pricing
    SHIPPING_PRICE: int = Field(default=500)
    TAX_PRICE: int = Field(default=0)

    # Stripe Payment Processing
    STRIPE_SECRET_KEY: str = Field(default="")
    STRIPE_WEBHOOK_SECRET: str = Field(default="")
    PAYMENT_CURRENCY: str = Field(default="dzd")
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = Field(default=15.0)
    # Legacy heuristic: match captured charges to orders by amount when no order id is attached
    PAYMENT_MATCH_BY_AMOUNT_FALLBACK: bool = Field(default=False)

    # Delivery agency
    DELIVERY_API_URL: str = Field(default="http://localhost:3001/api/v1")
    DELIVERY_WEBHOOK_URL: str = Field(default="http://localhost:8000/api/v1/orders/delivery/webhook")
    DELIVERY_AGENCY_NAME: str = Field(default="Yalidine Express")
    DELIVERY_API_TIMEOUT_SECONDS: float = Field(default=15.0)

    # Activity / audit trail
    ACTIVITY_SINK_ENABLED: bool = Field(default=True)

    # CORS
    ALLOWED_HOSTS: list[str] = Field(default=["http://localhost:5173"])

    # Application URLs
    FRONTEND_URL: str = Field(default="http://localhost:5173")
    BACKEND_URL: str = Field(default="http://localhost:8000")

    # Development
    DEBUG: bool = Field(default=False)
    TESTING: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    ENVIRONMENT: str = Field(default="development")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
