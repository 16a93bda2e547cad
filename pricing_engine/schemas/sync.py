"""Cart price synchronization Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from pricing_engine.schemas.pricing import DiscountAnnotation

ChangeType = Literal["price_increased", "price_decreased", "metadata_updated", "pwp_removed"]


class PriceDiff(BaseModel):
    """A stored cart line that no longer matches live pricing."""

    model_config = ConfigDict(frozen=True)

    item_id: str = Field(description="Line item identifier")
    variant_id: str | None = Field(default=None, description="Catalog variant")
    change_type: ChangeType = Field(description="Kind of drift detected")
    old_price: int = Field(description="Stored unit price")
    new_price: int | None = Field(default=None, description="Live unit price, None when the line must go")
    new_annotation: DiscountAnnotation | None = Field(default=None, description="Annotation the live price carries")
    recommended_action: Literal["update_price", "remove_item"] = Field(description="What the caller should do")
    message: str = Field(description="Human-readable explanation")


class SyncReport(BaseModel):
    """Result of checking a cart against live pricing. Never applied automatically."""

    model_config = ConfigDict(frozen=True)

    needs_sync: bool = Field(description="True when at least one line drifted")
    diffs: list[PriceDiff] = Field(default_factory=list, description="Per-line drift")
    skipped_items: list[str] = Field(default_factory=list, description="Lines with no live schedule")
