from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_ENV: str = "dev"
    APP_SECRET: str
    DB_URL: str
    JWT_ISS: str = "coffeeshop"
    SESSION_TTL_MIN: int = 24 * 60
    SESSION_COOKIE: str = "admin_session"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # excellent / good / average / poor cut-offs, in percent
    PROFIT_THRESHOLDS: tuple[float, float, float, float] = (30.0, 20.0, 10.0, 0.0)

    # seed values for the single config row
    STORE_NAME: str = "Koiu Coffee"
    STORE_CURRENCY: str = "Rp"
    STORE_WHATSAPP: str = "6281234567890"
    STORE_PICKUP_ADDRESS: str = ""
    STORE_PICKUP_COORDINATES: str = "0, 0"
    STORE_PICKUP_MAP_LINK: str = "https://maps.google.com"

    INIT_ADMIN_EMAIL: str = "admin@koiucoffee.com"
    INIT_ADMIN_PASSWORD: str = "admin123456"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
