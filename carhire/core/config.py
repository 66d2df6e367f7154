from pydantic_settings import BaseSettings

"""
API CONFIGURATION
"""


#Class to load and read backend .env
class Settings(BaseSettings):

    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = "http://localhost:3000,http://127.0.0.1:3000"

    DATABASE_URL: str = "sqlite:///./dev.db"

    ADMIN_API_KEY: str = "dev-admin-key"

    LOG_LEVEL: str = "INFO"

    #The business runs in one physical timezone regardless of server locale
    BUSINESS_TIMEZONE: str = "Pacific/Fiji"

    #Availability
    PENDING_HOLD_HOURS: int = 48
    BULK_MAX_IDS: int = 500

    #Dispatch
    DEFAULT_PICKUP_TIME: str = "09:00"
    DEFAULT_DROPOFF_TIME: str = "17:00"
    TASKS_SWITCH_HOUR: int = 15

    #Scheduled digest
    DIGEST_SEND_HOUR: int = 15
    DIGEST_SEND_WINDOW_MINUTES: int = 15
    DIGEST_MAX_CHARS: int = 3500

    #WhatsApp Cloud API
    WABA_ACCESS_TOKEN: str | None = None
    WABA_PHONE_NUMBER_ID: str | None = None
    WABA_GRAPH_VERSION: str = "v23.0"
    WABA_DIGEST_RECIPIENTS: str = ""

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()


#Placeholder shown when a vehicle comes from / returns to the yard
DEPOT_PLACEHOLDER = "(Depot / As arranged)"


#Public route rate limits (max requests, window seconds)
RATE_LIMITS = {
    "booking": (5, 600),
}
