# ticketing/database.py
from motor.motor_asyncio import AsyncIOMotorClient

from ticketing import config
from ticketing.store.mongo import MongoDocumentStore

client = AsyncIOMotorClient(config.MONGO_URI)
database = client[config.MONGO_DB_NAME]

store = MongoDocumentStore(client, database, max_attempts=config.STORE_TRANSACTION_ATTEMPTS)
