"""
Resource models for the library circulation engine.

Three media types can be lent:

- PhysicalCopy: a printed copy on a shelf. Only one user can hold it at a
  time, so it tracks availability and owns a reservation queue.
- DigitalCopy: an e-book. Always available, limited only by the
  institution's download allowance.
- AudioCopy: an audiobook streamed to the user. Always available.

``Resource`` is a discriminated union on the ``kind`` tag, so a plain dict
with ``"kind": "digital"`` validates straight into a ``DigitalCopy``.
Loan length, fine rate and renewability come from
:mod:`library_circulation.policy`.
"""

from datetime import date, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .. import policy
from ..enums import ResourceCondition
from .queue import ReservationQueue

_MODEL_CONFIG = ConfigDict(
    validate_assignment=True,
    use_enum_values=True,
    populate_by_name=True,
    validate_default=True,
    str_strip_whitespace=True,
)


class BaseResource(BaseModel):
    """Fields and behaviour shared by every media type."""

    id: str = Field(
        ...,
        description="Unique identifier for the resource",
        pattern=r"^res_[a-zA-Z0-9_]{3,}$",
        examples=["res_quijote01", "res_ebook_sql"],
    )

    title: str = Field(..., description="Title of the work", min_length=1, max_length=500)

    author: str = Field(default="", description="Author of the work", max_length=300)

    category: str = Field(default="General", description="Catalog category", max_length=100)

    times_lent: int = Field(default=0, description="Number of loans ever issued", ge=0)

    last_lent_on: date | None = Field(None, description="Date of the most recent loan")

    @property
    def loan_days(self) -> int:
        return policy.resource_policy(self).loan_days

    @property
    def fine_rate_per_day(self) -> float:
        return policy.resource_policy(self).fine_rate_per_day

    @property
    def reservable(self) -> bool:
        return policy.resource_policy(self).reservable

    def is_renewable(self, now: datetime | None = None) -> bool:
        return policy.is_renewable(self, now)

    def calculate_fine(self, days_late: int) -> float:
        return policy.calculate_fine(self, days_late)

    def is_lendable(self) -> bool:
        return True

    def mark_lent(self, today: date | None = None) -> None:
        """Record that a loan was issued against this resource."""
        self.times_lent += 1
        self.last_lent_on = today or date.today()

    def mark_returned(self) -> None:
        """Record that a loan against this resource was closed."""

    model_config = _MODEL_CONFIG


class PhysicalCopy(BaseResource):
    """A printed copy that only one user can hold at a time."""

    kind: Literal["physical"] = "physical"

    isbn: str | None = Field(
        None,
        description="ISBN-13 of the edition",
        pattern=r"^\d{13}$",
        examples=["9780134685479"],
    )

    location: str | None = Field(None, description="Shelf or room", max_length=200)

    condition: ResourceCondition = Field(
        default=ResourceCondition.EXCELLENT,
        description="Physical condition of the copy",
    )

    available: bool = Field(
        default=True,
        description="False while the copy is out on loan",
    )

    reservation_queue: ReservationQueue = Field(
        default_factory=ReservationQueue,
        description="Users waiting for this copy",
    )

    def is_lendable(self) -> bool:
        return self.available and self.condition != ResourceCondition.DAMAGED

    def mark_lent(self, today: date | None = None) -> None:
        super().mark_lent(today)
        self.available = False

    def mark_returned(self) -> None:
        self.available = True


class DigitalCopy(BaseResource):
    """An e-book, lendable until the institutional download allowance runs out."""

    kind: Literal["digital"] = "digital"

    file_format: str = Field(
        default="PDF",
        description="File format",
        pattern=r"^(PDF|EPUB|MOBI|AZW)$",
    )

    download_limit: int = Field(default=100, description="Institutional download allowance", ge=0)

    downloads: int = Field(default=0, description="Downloads issued so far", ge=0)

    @property
    def available(self) -> bool:
        return True

    @property
    def downloads_remaining(self) -> int:
        return max(0, self.download_limit - self.downloads)

    def is_lendable(self) -> bool:
        return self.downloads < self.download_limit

    def mark_lent(self, today: date | None = None) -> None:
        super().mark_lent(today)
        self.downloads += 1


class AudioCopy(BaseResource):
    """An audiobook, streamed to any number of users at once."""

    kind: Literal["audio"] = "audio"

    duration_minutes: int = Field(default=0, description="Running time in minutes", ge=0)

    narrator: str | None = Field(None, description="Narrator", max_length=200)

    @property
    def available(self) -> bool:
        return True

    @property
    def formatted_duration(self) -> str:
        hours, minutes = divmod(self.duration_minutes, 60)
        return f"{hours}:{minutes:02d} hours"


Resource = Annotated[PhysicalCopy | DigitalCopy | AudioCopy, Field(discriminator="kind")]

resource_adapter: TypeAdapter[Resource] = TypeAdapter(Resource)
