"""Per-request store wiring."""
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_async_session
from stores.base import Stores


async def get_stores(
    request: Request,
    db: AsyncSession = Depends(get_async_session),
) -> Stores:
    """Build the stores of the application's backend around the request's session."""
    return request.app.state.store_factory(db)
