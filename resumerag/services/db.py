import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING

from resumerag import config
from resumerag.utils.logging_config import get_logger

logger = get_logger(__name__)

logger.info(f"Initializing MongoDB connection to database: {config.DB_NAME}")

# Client creation is lazy on the driver side; no I/O happens until first use.
try:
    client = motor.motor_asyncio.AsyncIOMotorClient(config.MONGO_DETAILS)
    db = client[config.DB_NAME]
    logger.info("MongoDB client initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize MongoDB client: {e}")
    raise

# Collections
resumes_coll = db["resumes"]
jobs_coll = db["jobs"]
store_meta_coll = db["store_meta"]


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    for coll, name in ((resumes_coll, "resumes"), (jobs_coll, "jobs")):
        try:
            await coll.create_index([("id", ASCENDING)], unique=True)
            logger.debug(f"Created unique index on {name}.id")
        except Exception as e:
            if "already exists" in str(e).lower():
                logger.debug(f"Index on {name}.id already exists")
            else:
                logger.warning(f"Could not create unique index on {name}.id: {e}")

        try:
            await coll.create_index([("created_at", DESCENDING)])
            await coll.create_index([("owner", ASCENDING)])
            logger.debug(f"Created additional indexes on {name} collection")
        except Exception as e:
            logger.warning(f"Could not create some {name} indexes: {e}")

    logger.info("Database index initialization completed")


async def ping() -> bool:
    await client.admin.command("ping")
    return True
