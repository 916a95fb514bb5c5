from pydantic import BaseModel


class StoreSettings(BaseModel):
    """The store-wide settings row, loaded once per request."""
    id: int
    admin_whatsapp: str
    store_name: str
    currency: str
    pickup_address: str | None = None
    pickup_coordinates: str | None = None
    pickup_map_link: str | None = None

    model_config = {"from_attributes": True}


class StoreSettingsIn(BaseModel):
    admin_whatsapp: str | None = None
    store_name: str | None = None
    currency: str | None = None
    pickup_address: str | None = None
    pickup_coordinates: str | None = None
    pickup_map_link: str | None = None


class LoginIn(BaseModel):
    email: str | None = None
    password: str | None = None


class PasswordChangeIn(BaseModel):
    current_password: str | None = None
    new_password: str | None = None
