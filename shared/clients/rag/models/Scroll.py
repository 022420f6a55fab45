from pydantic import BaseModel


class ScoredPoint(BaseModel):
    """One similarity search hit."""

    id: str
    score: float
    payload: dict = {}


class StoredPoint(BaseModel):
    id: str | int | None = None
    payload: dict = {}


class ScrollPage(BaseModel):
    """
    One page of a namespace listing.

    Attributes:
        points:           Points of this page, payload restricted to the requested fields.
        next_page_offset: Cursor of the following page, None on the last one.
    """

    points: list[StoredPoint] = []
    next_page_offset: str | int | None = None
