# services/api/gallery_api/schemas.py

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, Dict, List, Optional

from .models import Category, Role

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"
URL_PATTERN = r"^https?://\S+$"

# ---- auth ----

class LoginReq(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[a-zA-Z0-9_]+$")
    password: str = Field(min_length=6)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

class PublicUser(BaseModel):
    id: int
    username: str
    role: Role

class LoginData(BaseModel):
    token: str
    user: PublicUser

class LoginResp(BaseModel):
    success: bool = True
    message: str = "Login successful"
    data: LoginData

class MessageResp(BaseModel):
    success: bool = True
    message: str

class MeResp(BaseModel):
    success: bool = True
    data: PublicUser

# ---- gallery ----

def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v

class GalleryItemOut(BaseModel):
    id: str
    url: str
    title: Optional[str] = None
    category: Category
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

class UploadedItemOut(BaseModel):
    id: str
    url: str
    category: Category
    title: Optional[str] = None

class UploadResp(BaseModel):
    success: bool = True
    message: str = "Image uploaded successfully"
    data: UploadedItemOut

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class GalleryPage(BaseModel):
    success: bool = True
    data: Dict[str, List[GalleryItemOut]]
    pagination: Pagination

class UpdateItemReq(BaseModel):
    url: Optional[str] = Field(default=None, pattern=URL_PATTERN, max_length=2048)
    title: Optional[str] = Field(default=None, max_length=200)
    category: Optional[Category] = None

    @field_validator("title", mode="before")
    @classmethod
    def blank_title_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @model_validator(mode="after")
    def at_least_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self

class ItemResp(BaseModel):
    success: bool = True
    message: str
    data: GalleryItemOut

class ReplaceItem(BaseModel):
    url: str = Field(pattern=URL_PATTERN, max_length=2048)
    title: Optional[str] = Field(default=None, max_length=200)
    category: Category

    @field_validator("title", mode="before")
    @classmethod
    def blank_title_to_none(cls, v: Any) -> Any:
        return _blank_to_none(v)

class ReplaceReq(BaseModel):
    items: List[ReplaceItem] = Field(default_factory=list, max_length=1000)

class ReplaceResp(BaseModel):
    success: bool = True
    message: str = "Gallery updated successfully"
    data: List[GalleryItemOut]
