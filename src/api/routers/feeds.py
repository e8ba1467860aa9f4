"""Feed reader endpoints: entry pages, categories, subscriptions and read state."""
from urllib.parse import urlsplit
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response

from api.dependencies import (
    Csrf,
    get_feed_query_service,
    get_feed_service,
    get_user_csrf,
    pop_flash,
    require_user,
)
from api.flash import redirect
from core.csrf import CsrfAction
from core.paginate import parse_page_number
from schemas.feed import (
    Category,
    CategoryForm,
    CsrfOnlyForm,
    FeedPage,
    Subscription,
    SubscriptionAddForm,
    SubscriptionEditForm,
)
from schemas.flash import Flash
from schemas.pages import (
    CategoryFormResponse,
    FeedAddResponse,
    FeedListResponse,
    FormResponse,
    SubscriptionFormResponse,
    SubscriptionListResponse,
)
from schemas.user import User
from services.exceptions import CategoryUUIDInvalidError, SubscriptionUUIDInvalidError
from services.feed_query_service import FeedQueryService
from services.feed_service import FeedService

router = APIRouter(prefix="/feeds", tags=["feeds"])

FEEDS_PATH = "/feeds"
SUBSCRIPTIONS_PATH = "/feeds/subscriptions"


def _category_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as e:
        raise CategoryUUIDInvalidError(value) from e


def _subscription_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as e:
        raise SubscriptionUUIDInvalidError(value) from e


def _back(request: Request, default: str = FEEDS_PATH) -> str:
    """Return the same-origin page the form was submitted from, or default."""
    referer = urlsplit(request.headers.get("referer", ""))
    if not referer.path or referer.netloc not in ("", request.url.netloc):
        return default
    return f"{referer.path}?{referer.query}" if referer.query else referer.path


def _feed_list(feeds: FeedPage, csrf: Csrf, flash: Flash | None) -> FeedListResponse:
    return FeedListResponse(
        flash=flash,
        feeds=feeds,
        csrf_tokens=csrf.tokens(CsrfAction.FEED_ENTRY_METADATA_EDIT),
    )


# =============================================================================
# Entry pages
# =============================================================================


@router.get("", response_model=FeedListResponse)
async def list_feeds(
    page: str | None = None,
    search: str = "",
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    queries: FeedQueryService = Depends(get_feed_query_service),
) -> FeedListResponse:
    """Entries of every subscription, newest first."""
    number = parse_page_number(page)
    if search:
        feeds = await queries.feeds_by_query_and_page(user.uuid, search, number)
    else:
        feeds = await queries.feeds_by_page(user.uuid, number)
    return _feed_list(feeds, csrf, flash)


@router.get("/add", response_model=FeedAddResponse)
async def subscribe_view(
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    feed_service: FeedService = Depends(get_feed_service),
) -> FeedAddResponse:
    return FeedAddResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.FEED_SUBSCRIPTION_ADD),
        categories=await feed_service.categories(user.uuid),
    )


@router.post("/add")
async def subscribe(
    form: SubscriptionAddForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    """Subscribe to a feed, retrieving it first if nobody follows it yet."""
    csrf.verify(form.csrf_token, CsrfAction.FEED_SUBSCRIPTION_ADD)
    if form.category_uuid is None:
        raise CategoryUUIDInvalidError("")
    await feed_service.subscribe(user.uuid, form.category_uuid, form.url)
    return redirect(FEEDS_PATH, "The feed has been successfully added")


@router.post("/entries/mark-all-read")
async def mark_all_as_read(
    request: Request,
    form: CsrfOnlyForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.FEED_ENTRY_METADATA_EDIT)
    await feed_service.mark_all_as_read(user.uuid)
    return redirect(_back(request))


@router.post("/entries/{uid}/toggle-read")
async def toggle_entry_read(
    request: Request,
    uid: str,
    form: CsrfOnlyForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.FEED_ENTRY_METADATA_EDIT)
    await feed_service.toggle_entry_read(user.uuid, uid)
    return redirect(_back(request))


# =============================================================================
# Categories
# =============================================================================


@router.get("/categories/add", response_model=FormResponse)
async def add_category_view(
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
) -> FormResponse:
    return FormResponse(flash=flash, csrf_token=csrf.token(CsrfAction.FEED_CATEGORY_ADD))


@router.post("/categories/add")
async def add_category(
    form: CategoryForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.FEED_CATEGORY_ADD)
    category = await feed_service.add_category(user.uuid, form.name)
    return redirect(FEEDS_PATH, f"The category '{category.name}' has been successfully added")


@router.get("/categories/{category_uuid}/edit", response_model=CategoryFormResponse)
async def edit_category_view(
    category_uuid: str,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    feed_service: FeedService = Depends(get_feed_service),
) -> CategoryFormResponse:
    return CategoryFormResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.FEED_CATEGORY_EDIT),
        category=await feed_service.category_by_uuid(user.uuid, _category_uuid(category_uuid)),
    )


@router.post("/categories/{category_uuid}/edit")
async def edit_category(
    category_uuid: str,
    form: CategoryForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.FEED_CATEGORY_EDIT)
    await feed_service.update_category(Category(
        uuid=_category_uuid(category_uuid), user_uuid=user.uuid, name=form.name,
    ))
    return redirect(SUBSCRIPTIONS_PATH, "The category has been successfully updated")


@router.get("/categories/{category_uuid}/delete", response_model=CategoryFormResponse)
async def delete_category_view(
    category_uuid: str,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    feed_service: FeedService = Depends(get_feed_service),
) -> CategoryFormResponse:
    return CategoryFormResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.FEED_CATEGORY_DELETE),
        category=await feed_service.category_by_uuid(user.uuid, _category_uuid(category_uuid)),
    )


@router.post("/categories/{category_uuid}/delete")
async def delete_category(
    category_uuid: str,
    form: CsrfOnlyForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    """Delete a category along with its subscriptions."""
    csrf.verify(form.csrf_token, CsrfAction.FEED_CATEGORY_DELETE)
    await feed_service.delete_category(user.uuid, _category_uuid(category_uuid))
    return redirect(FEEDS_PATH, "The category has been successfully deleted")


@router.get("/categories/{slug}", response_model=FeedListResponse)
async def list_feeds_by_category(
    slug: str,
    page: str | None = None,
    search: str = "",
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    feed_service: FeedService = Depends(get_feed_service),
    queries: FeedQueryService = Depends(get_feed_query_service),
) -> FeedListResponse:
    """Entries of the subscriptions of one category, newest first."""
    number = parse_page_number(page)
    category = await feed_service.category_by_slug(user.uuid, slug)
    if search:
        feeds = await queries.feeds_by_category_and_query_and_page(
            user.uuid, category, search, number,
        )
    else:
        feeds = await queries.feeds_by_category_and_page(user.uuid, category, number)
    return _feed_list(feeds, csrf, flash)


@router.post("/categories/{slug}/entries/mark-all-read")
async def mark_all_as_read_by_category(
    request: Request,
    slug: str,
    form: CsrfOnlyForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.FEED_ENTRY_METADATA_EDIT)
    category = await feed_service.category_by_slug(user.uuid, slug)
    await feed_service.mark_all_as_read_by_category(user.uuid, category.uuid)
    return redirect(_back(request, f"/feeds/categories/{category.slug}"))


# =============================================================================
# Subscriptions
# =============================================================================


@router.get("/subscriptions", response_model=SubscriptionListResponse)
async def list_subscriptions(
    user: User = Depends(require_user),
    flash: Flash | None = Depends(pop_flash),
    queries: FeedQueryService = Depends(get_feed_query_service),
) -> SubscriptionListResponse:
    """Subscriptions grouped by category."""
    return SubscriptionListResponse(
        flash=flash,
        categories=await queries.subscriptions_by_category(user.uuid),
    )


@router.get("/subscriptions/{subscription_uuid}/edit", response_model=SubscriptionFormResponse)
async def edit_subscription_view(
    subscription_uuid: str,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    feed_service: FeedService = Depends(get_feed_service),
    queries: FeedQueryService = Depends(get_feed_query_service),
) -> SubscriptionFormResponse:
    subscription = await queries.subscription_by_uuid(
        user.uuid, _subscription_uuid(subscription_uuid),
    )
    return SubscriptionFormResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.FEED_SUBSCRIPTION_EDIT),
        subscription=subscription,
        categories=await feed_service.categories(user.uuid),
    )


@router.post("/subscriptions/{subscription_uuid}/edit")
async def edit_subscription(
    subscription_uuid: str,
    form: SubscriptionEditForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    """Move a subscription to another category and/or set its alias."""
    csrf.verify(form.csrf_token, CsrfAction.FEED_SUBSCRIPTION_EDIT)
    await feed_service.update_subscription(Subscription(
        uuid=_subscription_uuid(subscription_uuid),
        user_uuid=user.uuid,
        category_uuid=form.category_uuid,
        alias=form.alias,
    ))
    return redirect(SUBSCRIPTIONS_PATH, "The subscription has been successfully updated")


@router.get("/subscriptions/{subscription_uuid}/delete", response_model=SubscriptionFormResponse)
async def delete_subscription_view(
    subscription_uuid: str,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    queries: FeedQueryService = Depends(get_feed_query_service),
) -> SubscriptionFormResponse:
    return SubscriptionFormResponse(
        flash=flash,
        csrf_token=csrf.token(CsrfAction.FEED_SUBSCRIPTION_DELETE),
        subscription=await queries.subscription_by_uuid(
            user.uuid, _subscription_uuid(subscription_uuid),
        ),
    )


@router.post("/subscriptions/{subscription_uuid}/delete")
async def delete_subscription(
    subscription_uuid: str,
    form: CsrfOnlyForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.FEED_SUBSCRIPTION_DELETE)
    await feed_service.delete_subscription(user.uuid, _subscription_uuid(subscription_uuid))
    return redirect(SUBSCRIPTIONS_PATH, "The subscription has been successfully deleted")


@router.get("/subscriptions/{subscription_uuid}", response_model=FeedListResponse)
async def list_feeds_by_subscription(
    subscription_uuid: str,
    page: str | None = None,
    search: str = "",
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    flash: Flash | None = Depends(pop_flash),
    queries: FeedQueryService = Depends(get_feed_query_service),
) -> FeedListResponse:
    """Entries of a single subscription, newest first."""
    number = parse_page_number(page)
    uuid = _subscription_uuid(subscription_uuid)
    if search:
        feeds = await queries.feeds_by_subscription_and_query_and_page(
            user.uuid, uuid, search, number,
        )
    else:
        feeds = await queries.feeds_by_subscription_and_page(user.uuid, uuid, number)
    return _feed_list(feeds, csrf, flash)


@router.post("/subscriptions/{subscription_uuid}/entries/mark-all-read")
async def mark_all_as_read_by_subscription(
    request: Request,
    subscription_uuid: str,
    form: CsrfOnlyForm,
    user: User = Depends(require_user),
    csrf: Csrf = Depends(get_user_csrf),
    feed_service: FeedService = Depends(get_feed_service),
) -> Response:
    csrf.verify(form.csrf_token, CsrfAction.FEED_ENTRY_METADATA_EDIT)
    uuid = _subscription_uuid(subscription_uuid)
    await feed_service.mark_all_as_read_by_subscription(user.uuid, uuid)
    return redirect(_back(request, f"{SUBSCRIPTIONS_PATH}/{uuid}"))
