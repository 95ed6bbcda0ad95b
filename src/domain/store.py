"""Store Domain Entity

One row per installed Shopify shop.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import String
from src.domain.base import BaseModel, generate_uuid


class Store(BaseModel, table=True):
    __tablename__ = "stores"

    id: str = Field(default_factory=generate_uuid, primary_key=True)

    shop_domain: str = Field(
        sa_column=Column(String(255), nullable=False, unique=True, index=True),
        description="myshopify.com domain of the shop"
    )

    access_token: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Offline Admin API token (None until the app is installed)"
    )

    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(default_factory=datetime.utcnow)
