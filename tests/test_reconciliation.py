# tests/test_reconciliation.py
import asyncio
import json

import pytest

from ticketing.exceptions import ConflictError, OrderNotFound, ReconciliationFailed
from ticketing.models.order import FAILED, PAID
from ticketing.services.intake import order_id_for
from ticketing.services.reconciliation import build_qr_payload, reconcile
from ticketing.store.base import EVENTS, ORDERS, TICKETS
from ticketing.store.memory import MemoryDocumentStore


async def test_paid_order_issues_one_ticket_per_unit(store, event, vip, line_item, pending_order):
    order = await pending_order("ref_1", [line_item(vip, 2)])

    result = await reconcile(store, "ref_1")

    assert result.created is True
    assert result.order_id == order.id
    assert len(result.ticket_ids) == 2
    saved = await store.get(ORDERS, order.id)
    assert saved["status"] == PAID
    assert saved["paidAt"] is not None
    assert saved["ticketIds"] == result.ticket_ids
    assert saved["sellerIds"] == [event.seller_id]

    tickets = await store.find(TICKETS, {"orderId": order.id})
    assert sorted(t["id"] for t in tickets) == sorted(result.ticket_ids)
    for ticket in tickets:
        assert ticket["status"] == "unused"
        assert ticket["ticketTypeId"] == vip.id
        assert ticket["sellerId"] == event.seller_id
        assert ticket["eventTitle"] == "Afro Nation Lagos"
        assert ticket["typeName"] == "VIP"
        assert ticket["scannedAt"] is None
        assert json.loads(ticket["qrPayload"]) == {"t": ticket["id"], "e": event.id, "tt": vip.id}


async def test_second_reconcile_returns_same_tickets(store, vip, line_item, pending_order):
    await pending_order("ref_1", [line_item(vip, 2)])

    first = await reconcile(store, "ref_1")
    second = await reconcile(store, "ref_1")

    assert second.created is False
    assert second.ticket_ids == first.ticket_ids
    assert len(await store.find(TICKETS)) == 2


async def test_repeated_reconcile_never_duplicates(store, regular, vip, line_item, pending_order):
    await pending_order("ref_many", [line_item(regular, 3), line_item(vip, 1)])

    results = [await reconcile(store, "ref_many") for _ in range(5)]

    assert {tuple(r.ticket_ids) for r in results} == {tuple(results[0].ticket_ids)}
    assert sum(r.created for r in results) == 1
    assert len(await store.find(TICKETS)) == 4


async def test_concurrent_reconcile_issues_once(store, regular, line_item, pending_order):
    """Webhook and buyer callback racing on the same reference."""
    await pending_order("ref_race", [line_item(regular, 3)])

    results = await asyncio.gather(*(reconcile(store, "ref_race") for _ in range(4)))

    assert sum(r.created for r in results) == 1
    assert {tuple(r.ticket_ids) for r in results} == {tuple(results[0].ticket_ids)}
    assert len(await store.find(TICKETS)) == 3


async def test_inventory_moves_with_issuance(store, event, regular, vip, line_item, pending_order):
    await pending_order("ref_inv", [line_item(regular, 3), line_item(vip, 2)])

    await reconcile(store, "ref_inv")
    await reconcile(store, "ref_inv")

    types = {tt["id"]: tt for tt in (await store.get(EVENTS, event.id))["ticketTypes"]}
    assert types[regular.id]["quantitySold"] == 3
    assert types[vip.id]["quantitySold"] == 2


async def test_oversold_payment_still_gets_tickets(store, event, vip, line_item, pending_order):
    doc = await store.get(EVENTS, event.id)
    doc["ticketTypes"][1]["quantitySold"] = 9
    await store.put(EVENTS, event.id, doc)
    await pending_order("ref_last", [line_item(vip, 2)])

    result = await reconcile(store, "ref_last")

    assert len(result.ticket_ids) == 2
    assert (await store.get(EVENTS, event.id))["ticketTypes"][1]["quantitySold"] == 11


async def test_missing_order_without_metadata(store):
    with pytest.raises(OrderNotFound):
        await reconcile(store, "ref_unknown")
    with pytest.raises(OrderNotFound):
        await reconcile(store, "ref_unknown", gateway_data={"status": "success", "metadata": {}})


async def test_missing_order_rebuilt_from_gateway_metadata(store, event, vip, line_item):
    items = [line_item(vip, 2).to_document()]
    gateway_data = {
        "status": "success",
        "reference": "ref_lost",
        "amount": 1000000,
        "currency": "NGN",
        "customer": {"email": "ada@example.com"},
        # Paystack can echo metadata back as a string
        "metadata": json.dumps({"buyerId": "buyer_1", "items": items}),
    }

    result = await reconcile(store, "ref_lost", gateway_data=gateway_data)

    order = await store.get(ORDERS, order_id_for("ref_lost"))
    assert order["synthetic"] is True
    assert order["status"] == PAID
    assert order["totalMinor"] == 1000000
    assert order["buyerEmail"] == "ada@example.com"
    assert len(result.ticket_ids) == 2

    again = await reconcile(store, "ref_lost", gateway_data=gateway_data)
    assert again.ticket_ids == result.ticket_ids
    assert len(await store.find(TICKETS)) == 2


async def test_failed_order_needs_a_human(store, vip, line_item, pending_order):
    order = await pending_order("ref_failed", [line_item(vip, 1)])
    doc = await store.get(ORDERS, order.id)
    await store.put(ORDERS, order.id, {**doc, "status": FAILED})

    with pytest.raises(ReconciliationFailed) as exc_info:
        await reconcile(store, "ref_failed")
    assert exc_info.value.order_id == order.id
    assert await store.find(TICKETS) == []


class AlwaysConflictingStore(MemoryDocumentStore):
    async def transact(self, fn):
        raise ConflictError()


async def test_exhausted_conflicts_surface_order_id():
    store = AlwaysConflictingStore()

    with pytest.raises(ReconciliationFailed) as exc_info:
        await reconcile(store, "ref_busy")

    assert exc_info.value.order_id == order_id_for("ref_busy")
    assert exc_info.value.reference == "ref_busy"
    assert order_id_for("ref_busy") in exc_info.value.message


def test_qr_payload_is_compact_json():
    assert build_qr_payload("tk_1", "ev_1", "tt_vip") == '{"t":"tk_1","e":"ev_1","tt":"tt_vip"}'


async def test_order_found_by_reference(store, vip, line_item, pending_order):
    await pending_order("ref_1", [line_item(vip, 2)], order_id="ord_1")

    first = await reconcile(store, "ref_1")
    second = await reconcile(store, "ref_1")

    assert first.order_id == "ord_1"
    assert (await store.get(ORDERS, "ord_1"))["status"] == PAID
    tickets = await store.find(TICKETS, {"orderId": "ord_1"})
    assert len(tickets) == 2
    assert {t["status"] for t in tickets} == {"unused"}
    assert second.created is False
    assert second.ticket_ids == first.ticket_ids
    assert len(await store.find(TICKETS)) == 2


async def test_gateway_metadata_settles_the_existing_order(store, vip, line_item, pending_order):
    items = [line_item(vip, 2)]
    await pending_order("ref_1", items, order_id="ord_1")
    gateway_data = {
        "status": "success",
        "reference": "ref_1",
        "metadata": {"buyerId": "buyer_1", "items": [i.to_document() for i in items]},
    }

    result = await reconcile(store, "ref_1", gateway_data=gateway_data)

    assert result.order_id == "ord_1"
    orders = await store.find(ORDERS, {"reference": "ref_1"})
    assert [(o["id"], o["status"], o["synthetic"]) for o in orders] == [("ord_1", PAID, False)]
    assert len(await store.find(TICKETS)) == 2


async def test_ticket_labels_come_from_the_catalogue(store, vip, line_item, pending_order):
    await pending_order("ref_label", [line_item(vip, 1, name="BACKSTAGE ALL ACCESS", event_title="Some Other Show")])

    [ticket_id] = (await reconcile(store, "ref_label")).ticket_ids

    ticket = await store.get(TICKETS, ticket_id)
    assert ticket["typeName"] == "VIP"
    assert ticket["eventTitle"] == "Afro Nation Lagos"
