"""
Identity provider payload models.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ProviderToken(BaseModel):
    """Token exchange response."""
    model_config = ConfigDict(extra="ignore")

    token_type: str = "Bearer"
    access_token: str
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None

    @property
    def authorization(self) -> str:
        return f"{self.token_type} {self.access_token}"


class ProviderProfile(BaseModel):
    """Profile of the authenticated user."""
    model_config = ConfigDict(extra="ignore")

    id: str
    username: Optional[str] = None
    discriminator: Optional[str] = None
    global_name: Optional[str] = None
    email: Optional[str] = None
    verified: bool = False


class Membership(BaseModel):
    """A group (guild) the user belongs to."""
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    owner: bool = False
    permissions: Optional[str] = None
