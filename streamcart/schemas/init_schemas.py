from streamcart.app_config import get_app_environ_config
from streamcart.schemas.init import init_beanie_odm
from streamcart.shared.storage.mongo import get_mongo_client


async def init_schema():
    cfg = get_app_environ_config()
    mongo_client = get_mongo_client(cfg.MONGO_LABEL)
    await init_beanie_odm(mongo_client, cfg.MONGO_DB_NAME)


if __name__ == "__main__":
    import asyncio

    asyncio.run(init_schema())
