"""Response bodies of the page endpoints."""
from pydantic import BaseModel, Field

from schemas.bookmark import Bookmark, BookmarkPage, TagPage
from schemas.feed import Category, FeedPage, SubscribedFeed, SubscriptionsByCategory
from schemas.flash import Flash
from schemas.user import UserInfo


class PageResponse(BaseModel):
    """Fields shared by every page."""

    flash: Flash | None = None


class FormResponse(PageResponse):
    """A page backing a single form."""

    csrf_token: str = ""


class HomeResponse(PageResponse):
    user: UserInfo | None = None


class BookmarkListResponse(PageResponse):
    bookmarks: BookmarkPage


class BookmarkFormResponse(FormResponse):
    bookmark: Bookmark


class PublicBookmarkListResponse(PageResponse):
    bookmarks: BookmarkPage
    atom_feed_url: str


class TagListResponse(PageResponse):
    tags: TagPage


class TagFormResponse(FormResponse):
    name: str
    encoded_name: str


class FeedListResponse(PageResponse):
    feeds: FeedPage
    # Keyed by form action
    csrf_tokens: dict[str, str] = Field(default_factory=dict)


class FeedAddResponse(FormResponse):
    categories: list[Category]


class CategoryFormResponse(FormResponse):
    category: Category


class SubscriptionListResponse(PageResponse):
    categories: list[SubscriptionsByCategory]


class SubscriptionFormResponse(FormResponse):
    subscription: SubscribedFeed
    categories: list[Category] = Field(default_factory=list)


class UserListResponse(PageResponse):
    users: list[UserInfo]
