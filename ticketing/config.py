# ticketing/config.py
from decouple import config, Csv

MONGO_URI = config("MONGO_URI", default="mongodb://localhost:27017")
MONGO_DB_NAME = config("MONGO_DB_NAME", default="event_ticketing")

# Number of times a conflicting transaction is re-run before ConflictError
STORE_TRANSACTION_ATTEMPTS = config("STORE_TRANSACTION_ATTEMPTS", default=5, cast=int)

PAYSTACK_SECRET_KEY = config("PAYSTACK_SECRET_KEY", default="")
PAYSTACK_BASE_URL = config("PAYSTACK_BASE_URL", default="https://api.paystack.co")
PAYSTACK_CURRENCY = config("PAYSTACK_CURRENCY", default="NGN")
PAYSTACK_CALLBACK_URL = config("PAYSTACK_CALLBACK_URL", default="")
PAYSTACK_TIMEOUT = config("PAYSTACK_TIMEOUT", default=15.0, cast=float)
PAYSTACK_SUCCESS_EVENTS = config("PAYSTACK_SUCCESS_EVENTS", default="charge.success,payment.success", cast=Csv())

ORDER_REFERENCE_PREFIX = config("ORDER_REFERENCE_PREFIX", default="cadak")
SUPPORT_EMAIL = config("SUPPORT_EMAIL", default="support@cadak.ng")

AUTH_JWT_SECRET = config("AUTH_JWT_SECRET", default="your-secret-key")
AUTH_JWT_ALGORITHM = config("AUTH_JWT_ALGORITHM", default="HS256")

LOG_LEVEL = config("LOG_LEVEL", default="INFO")
LOG_JSON = config("LOG_JSON", default=True, cast=bool)
