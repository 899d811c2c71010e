"""Signed-in user identity, as handed over by the identity provider."""

from typing import Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field

AVATAR_FALLBACK_URL = (
    "https://api.dicebear.com/9.x/avataaars/svg?seed={seed}&backgroundColor=b6e3f4"
)


class UserIdentity(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    uid: str = Field(
        ...,
        min_length=1,
        description="Stable subject id from the identity provider"
    )
    display_name: Optional[str] = None
    email: Optional[str] = None
    photo_url: Optional[str] = None

    @property
    def avatar_url(self) -> str:
        if self.photo_url:
            return self.photo_url
        return AVATAR_FALLBACK_URL.format(seed=quote(self.uid, safe=""))

    @property
    def name(self) -> str:
        return self.display_name or self.email or "User"
