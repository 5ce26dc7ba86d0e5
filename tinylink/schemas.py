from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


# Left untyped so crud.create_link reports bad values in its own order
class LinkCreate(BaseModel):
    url: Any = None
    code: Any = None

class LinkOut(BaseModel):
    code: str
    url: str
    total_clicks: int
    last_clicked_at: datetime | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class HealthOut(BaseModel):
    ok: bool
    status: str
    database: str
    timestamp: datetime
    version: str

class QROut(BaseModel):
    qr_base64: str
