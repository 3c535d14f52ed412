"""Pydantic models for recall feed data."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.types import DateString, DistributeurList, ItemID, SnapshotID


class DistributorInfo(BaseModel):
    """Metadata scraped from a recall's detail page."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    distributeurs_raw: str = ""
    distributeurs_list: DistributeurList = Field(default_factory=list)
    motif_raw: str = ""


class FeedItem(BaseModel):
    """A single recall notice as normalized from the RSS feed.

    Serialized with camelCase keys (``pubDateISO``, ``descriptionHtml``...)
    so snapshot rows stay readable by the dashboard. Enrichment never mutates
    an item; it produces a copy with the distributor fields populated.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: ItemID = Field(..., min_length=1)
    title: str = ""
    link: str = ""
    pub_date: str = ""
    pub_date_iso: DateString | None = Field(None, alias="pubDateISO")
    pub_date_ts: int = 0
    description_html: str = ""
    enclosure_url: str = ""

    # Populated by enrichment, absent on freshly fetched items
    distributeurs_raw: str | None = None
    distributeurs_list: DistributeurList | None = None
    motif_raw: str | None = None

    def with_distributor_info(self, info: DistributorInfo) -> "FeedItem":
        """Return a copy of this item carrying the scraped metadata."""
        return self.model_copy(
            update={
                "distributeurs_raw": info.distributeurs_raw,
                "distributeurs_list": list(info.distributeurs_list),
                "motif_raw": info.motif_raw,
            }
        )

    def to_snapshot_dict(self) -> dict:
        """Feed fields only, in wire format, for snapshot storage."""
        return self.model_dump(
            by_alias=True,
            exclude={"distributeurs_raw", "distributeurs_list", "motif_raw"},
        )


class Snapshot(BaseModel):
    """Persisted capture of the full item set observed at one run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: SnapshotID
    created_at: datetime | None = None
    items: list[FeedItem] = Field(default_factory=list)
