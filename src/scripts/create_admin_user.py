"""
Create an administrator account.

Usage:
    PYTHONPATH=src python src/scripts/create_admin_user.py \
        --email admin@example.com --nick-name admin --display-name Admin --password secret
"""
import argparse
import asyncio
import logging

from db.session import dispose_engine, get_session_factory
from schemas.user import User
from services.user_service import UserService
from stores.postgres import postgres_stores

logger = logging.getLogger(__name__)


async def create_admin_user(email: str, nick_name: str, display_name: str, password: str) -> User:
    """Register an admin account and commit it."""
    async with get_session_factory()() as session:
        users = UserService(postgres_stores(session).users)
        user = await users.add(User(
            email=email,
            nick_name=nick_name,
            display_name=display_name,
            password=password,
            is_admin=True,
        ))
        await session.commit()
    return user


async def main(args: argparse.Namespace) -> None:
    try:
        user = await create_admin_user(
            args.email, args.nick_name, args.display_name, args.password,
        )
        logger.info("Created admin user %s (%s)", user.nick_name, user.uuid)
    finally:
        await dispose_engine()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Create an administrator account')
    parser.add_argument('--email', required=True)
    parser.add_argument('--nick-name', required=True)
    parser.add_argument('--display-name', required=True)
    parser.add_argument('--password', required=True)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    asyncio.run(main(parser.parse_args()))
