from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # === DATABASE ===
    DATABASE_URL: str = Field(default="sqlite:///./talenthunt.db", description="SQLAlchemy database URL")

    # === JWT AUTH ===
    SECRET_KEY: str = Field(default="change-me", description="Secret key for JWT token signing")
    ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24, description="JWT token expiration time in minutes")

    # === EMAIL ===
    EMAIL_HOST: str = Field(default="localhost", description="SMTP host")
    EMAIL_PORT: int = Field(default=587, description="SMTP port")
    EMAIL_HOST_USER: str = Field(default="", description="SMTP username")
    EMAIL_HOST_PASSWORD: str = Field(default="", description="SMTP password")
    EMAIL_FROM: str = Field(default="noreply@edotalenthunt.com", description="Email sender address")
    MAIL_SUPPRESS_SEND: bool = Field(default=False, description="Render emails without delivering them")

    # === ONE-TIME CODES ===
    OTP_LENGTH: int = Field(default=4, description="Number of digits in verification codes")
    OTP_EXPIRE_MINUTES: int = Field(default=10, description="Verification code lifetime in minutes")

    # === PRICING ===
    CURRENCY: str = Field(default="NGN", description="Currency for all amounts")
    REGISTRATION_FEE: int = Field(default=1090, description="Individual/group registration fee")
    BULK_PRICE_PER_SLOT: int = Field(default=10000, description="Price of one bulk registration slot")
    BULK_MIN_SLOTS: int = Field(default=2, description="Minimum slots in a bulk purchase")
    BULK_MAX_SLOTS: int = Field(default=50, description="Maximum slots in a bulk purchase")

    # === PAYMENT GATEWAY ===
    PAYMENT_CHECKOUT_URL: str = Field(default="https://checkout.paystack.com", description="Hosted checkout base URL")
    PAYMENT_WEBHOOK_SECRET: str = Field(default="", description="Secret used to sign gateway webhooks")
    PAYSTACK_SECRET_KEY: str = Field(default="", description="Paystack secret key")
    PAYMENT_VERIFY_URL: str = Field(default="https://api.paystack.co/transaction/verify", description="Gateway verify endpoint")
    PAYMENT_VERIFY_WITH_GATEWAY: bool = Field(default=True, description="Re-query the gateway instead of trusting client payloads")
    PAYMENT_STATUS_CONVENTION: str = Field(default="default", description="Status encoding used by the integration: default or textual")

    # === LOCATIONS ===
    LOCATION_DATA_URL: str = Field(
        default="https://temikeezy.github.io/nigeria-geojson-data/data/full.json",
        description="Source of state/LGA data",
    )
    LOCATION_CACHE_HOURS: int = Field(default=24, description="How long location data stays fresh")

    # === UPLOADS ===
    UPLOAD_DIR: str = Field(default="static/uploads", description="Directory for stored media")
    MEDIA_BASE_URL: str = Field(default="/static/uploads", description="Public URL prefix for stored media")

    # === DEBUG MODE ===
    DEBUG: bool = Field(default=True, description="Debug mode")


# Create settings instance
settings = Settings()
