"""Request body models for the JSON API."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from homeflix.domain.enums import LibraryType

MAX_PAGE_SIZE = 500


class CreateLibraryRequest(BaseModel):
    """Body of POST /api/libraries."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1, max_length=200)
    type: LibraryType
    root_path: str = Field(min_length=1)
    scan: bool = True

    @field_validator("name", "root_path")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Reject values that are only whitespace."""
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class ListItemsQuery(BaseModel):
    """Query string of GET /api/libraries/{library_id}/items.

    ``type=all`` is the same as leaving the type filter out.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: LibraryType | Literal["all"] = "all"
    sort: Literal["date_added", "title", "year"] = "date_added"
    order: Literal["asc", "desc"] = "desc"
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=MAX_PAGE_SIZE)

    @property
    def media_type(self) -> str | None:
        return None if self.type == "all" else self.type.value

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
