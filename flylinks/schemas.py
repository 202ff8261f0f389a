from datetime import datetime

from pydantic import BaseModel, ConfigDict


class LinkCreate(BaseModel):
    url: str
    short_code: str | None = None

class LinkOut(BaseModel):
    code: str
    url: str
    user: str
    clicks: int
    created_at: datetime | None = None
    short_url: str | None = None

    model_config = ConfigDict(from_attributes=True)

class PaginatedLinks(BaseModel):
    items: list[LinkOut]
    total: int
    skip: int
    limit: int
    sort_column: str
    sort_order: str

class CodeOut(BaseModel):
    code: str

class Token(BaseModel):
    access_token: str
    token_type: str

class MessageOut(BaseModel):
    ok: bool
    detail: str
