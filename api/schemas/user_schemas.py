from pydantic import BaseModel
from typing import Optional


class CurrentUser(BaseModel):
    id: int
    email: str
    preferences: Optional[dict] = None
