"""Taxable event model produced by transaction normalization."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from cgtledger.models.enums import AssetClass, EventType, Tag


class TaxableEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = 0
    source_transaction_id: str
    datetime: datetime
    event_type: EventType
    tag: Tag
    asset: str
    asset_class: AssetClass | None = None
    quantity: Decimal = Field(gt=0)
    value_gbp: Decimal = Field(default=Decimal("0"), ge=0)
    fees_gbp: Decimal = Field(default=Decimal("0"), ge=0)
    description: str | None = None

    @property
    def event_date(self) -> date:
        """Calendar date in the event's own UTC offset."""
        return self.datetime.date()

    @property
    def total_cost_gbp(self) -> Decimal:
        return self.value_gbp + self.fees_gbp

    @property
    def is_acquisition(self) -> bool:
        return self.event_type == EventType.ACQUISITION

    @property
    def is_disposal(self) -> bool:
        return self.event_type == EventType.DISPOSAL

    @property
    def is_unclassified(self) -> bool:
        return self.tag == Tag.UNCLASSIFIED

    @property
    def display_type(self) -> str:
        return display_event_type(self.event_type, self.tag)


def display_event_type(event_type: EventType, tag: Tag) -> str:
    """Label used in reports, e.g. GiftIn, UnclassifiedOut, StakingReward."""
    if tag == Tag.GIFT:
        return "GiftIn" if event_type == EventType.ACQUISITION else "GiftOut"
    if tag == Tag.UNCLASSIFIED:
        return "UnclassifiedIn" if event_type == EventType.ACQUISITION else "UnclassifiedOut"
    if event_type == EventType.ACQUISITION and tag != Tag.TRADE:
        return tag.value
    return event_type.value
