from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserRegister(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    phone: Optional[str] = None


class SavedAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = Field(default=None, alias="zipCode")
    country: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[SavedAddress] = None


class AuthUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(alias="_id")
    name: str = ""
    email: str = ""
    role: str = "user"
    phone: Optional[str] = None
    address: Optional[SavedAddress] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
