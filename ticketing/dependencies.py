# ticketing/dependencies.py
from ticketing.services.paystack import PaymentGateway, PaystackGateway
from ticketing.store.base import DocumentStore


def get_store() -> DocumentStore:
    from ticketing.database import store

    return store


def get_gateway() -> PaymentGateway:
    return PaystackGateway()
