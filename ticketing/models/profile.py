# ticketing/models/profile.py
from datetime import datetime
from typing import Optional

from ticketing.models.base import CamelModel


class Socials(CamelModel):
    facebook: Optional[str] = None
    twitter: Optional[str] = None
    instagram: Optional[str] = None


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    about: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    socials: Optional[Socials] = None


class Profile(ProfileUpdate):
    uid: str
    updated_at: Optional[datetime] = None
