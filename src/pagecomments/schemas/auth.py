"""Authentication and CSRF schemas."""

from pydantic import BaseModel, ConfigDict


class LoginRequest(BaseModel):
    password: str = ""

    model_config = ConfigDict(extra="ignore")


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Logged in successfully"
    csrf_token: str


class CsrfTokenResponse(BaseModel):
    token: str
