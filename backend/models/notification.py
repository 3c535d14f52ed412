"""Pydantic models for recipient routing and email delivery."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.feed import FeedItem
from models.types import ContentKind, EmailAddress


class RecipientConfig(BaseModel):
    """Notification preferences for one email address."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    email: EmailAddress = Field(..., pattern=r"^[^@]+@[^@]+\.[^@]+$")
    distributeurs: list[str] = Field(default_factory=list)
    only_new_items: bool = False


class ContentSpec(BaseModel):
    """What a single recipient should receive.

    ``new_only`` carries only ``new_items``. ``latest_plus_new`` carries the
    new items first, then the remaining latest items; changed and removed
    items ride along as extra sections when the run produced any.
    """

    kind: ContentKind
    new_items: list[FeedItem] = Field(default_factory=list)
    latest_items: list[FeedItem] = Field(default_factory=list)
    changed_items: list[FeedItem] = Field(default_factory=list)
    removed_items: list[FeedItem] = Field(default_factory=list)

    @property
    def items(self) -> list[FeedItem]:
        """Headline item set: new items followed by remaining latest items."""
        return self.new_items + self.latest_items


class RecipientRoute(BaseModel):
    """Routing decision for one recipient (content_spec None = send nothing)."""

    recipient: RecipientConfig
    content_spec: ContentSpec | None = None


class EmailContent(BaseModel):
    """Rendered email body, independent of who receives it."""

    subject: str
    text: str
    html: str


class EmailMessage(EmailContent):
    """Rendered email addressed to its recipients."""

    recipients: list[EmailAddress] = Field(..., min_length=1)


class DeliveryResult(BaseModel):
    """Outcome of sending one recipient's email."""

    email: EmailAddress
    message_id: str | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None
