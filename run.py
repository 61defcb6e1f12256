import argparse
import asyncio

import uvicorn

from src.cmscrm.config import settings


async def _init_db(admin_email, admin_password):
    from src.cmscrm.bootstrap import create_tables, seed_admin, seed_roles
    from src.cmscrm.utils.database import AsyncSessionLocal, engine

    await create_tables(engine)
    async with AsyncSessionLocal() as db:
        await seed_roles(db)
        if admin_email and admin_password:
            await seed_admin(db, admin_email, admin_password)
    await engine.dispose()


def main():
    parser = argparse.ArgumentParser(description="CMSCRM backend")
    parser.add_argument('--host', default=settings.HOST)
    parser.add_argument('--port', type=int, default=settings.PORT)
    parser.add_argument('--reload', action='store_true')
    parser.add_argument('--init-db', action='store_true', help='create tables and seed roles, then exit')
    parser.add_argument('--admin-email')
    parser.add_argument('--admin-password')
    args = parser.parse_args()

    if args.init_db:
        asyncio.run(_init_db(args.admin_email, args.admin_password))
        print('Database initialised')
        return

    uvicorn.run("src.cmscrm.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == '__main__':
    main()
