import threading

import pytest

from orderup.domain.errors import OrderExistsError, OrderNotFoundError
from orderup.domain.models import Order, OrderStatus, StatusFilter

from conftest import widget


def make_order(order_id="", email="a@b.c", status=OrderStatus.PENDING):
    return Order(id=order_id, customer_email=email, line_items=[widget()], status=status)


class TestInsert:
    def test_generates_id_when_missing(self, order_repo):
        order_id = order_repo.insert_order(make_order())
        assert len(order_id) == 32
        assert order_repo.get_order(order_id).id == order_id

    def test_keeps_caller_supplied_id(self, order_repo):
        assert order_repo.insert_order(make_order("order-1")) == "order-1"

    def test_duplicate_id_is_rejected_and_first_record_kept(self, order_repo):
        order_repo.insert_order(make_order("order-1", email="first@example.com"))

        with pytest.raises(OrderExistsError):
            order_repo.insert_order(make_order("order-1", email="second@example.com"))

        assert order_repo.get_order("order-1").customer_email == "first@example.com"
        assert len(order_repo.list_orders()) == 1

    def test_generated_ids_do_not_collide(self, order_repo):
        ids = [order_repo.insert_order(make_order()) for _ in range(50)]
        assert len(set(ids)) == 50


class TestGet:
    def test_round_trips_all_fields(self, order_repo):
        order = Order(
            id="o1",
            customer_email="a@b.c",
            line_items=[widget(1000, 2), widget(-100, 1, "Discount")],
        )
        order_repo.insert_order(order)
        assert order_repo.get_order("o1") == order

    def test_missing_order(self, order_repo):
        with pytest.raises(OrderNotFoundError):
            order_repo.get_order("nope")

    def test_no_partial_matches(self, order_repo):
        order_repo.insert_order(make_order("order-123"))
        with pytest.raises(OrderNotFoundError):
            order_repo.get_order("order-12")


class TestList:
    def test_empty_store_returns_empty_list(self, order_repo):
        assert order_repo.list_orders() == []
        assert order_repo.list_orders(StatusFilter.CHARGED) == []

    def test_filters_by_status(self, order_repo):
        for status in OrderStatus:
            order_repo.insert_order(make_order(status.name.lower(), status=status))

        assert [o.id for o in order_repo.list_orders(StatusFilter.PENDING)] == ["pending"]
        assert [o.id for o in order_repo.list_orders(StatusFilter.CANCELLED)] == ["cancelled"]
        assert sorted(o.id for o in order_repo.list_orders(StatusFilter.ALL)) == [
            "cancelled", "charged", "fulfilled", "pending",
        ]


class TestSetStatus:
    def test_updates_status(self, order_repo):
        order_repo.insert_order(make_order("o1"))
        order_repo.set_order_status("o1", OrderStatus.CHARGED)
        assert order_repo.get_order("o1").status == OrderStatus.CHARGED

    def test_does_not_validate_transitions(self, order_repo):
        order_repo.insert_order(make_order("o1", status=OrderStatus.CANCELLED))
        order_repo.set_order_status("o1", OrderStatus.PENDING)
        assert order_repo.get_order("o1").status == OrderStatus.PENDING

    def test_missing_order(self, order_repo):
        with pytest.raises(OrderNotFoundError):
            order_repo.set_order_status("nope", OrderStatus.CHARGED)

    def test_earlier_reads_are_not_changed(self, order_repo):
        order_repo.insert_order(make_order("o1"))
        before = order_repo.get_order("o1")
        order_repo.set_order_status("o1", OrderStatus.CANCELLED)
        assert before.status == OrderStatus.PENDING


class TestInMemoryConcurrency:
    def test_concurrent_inserts_with_same_id(self, memory_repo):
        results = []
        start = threading.Barrier(20)

        def insert():
            start.wait()
            try:
                memory_repo.insert_order(make_order("same"))
                results.append("ok")
            except OrderExistsError:
                results.append("exists")

        threads = [threading.Thread(target=insert) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count("ok") == 1
        assert results.count("exists") == 19

    def test_list_sees_every_order_while_statuses_change(self, memory_repo):
        ids = [memory_repo.insert_order(make_order()) for _ in range(100)]
        done = threading.Event()
        seen_sizes = set()

        def churn():
            statuses = list(OrderStatus)
            for i in range(2000):
                memory_repo.set_order_status(ids[i % len(ids)], statuses[i % len(statuses)])
            done.set()

        writer = threading.Thread(target=churn)
        writer.start()
        while not done.is_set():
            seen_sizes.add(len(memory_repo.list_orders()))
        writer.join()

        assert seen_sizes <= {100}
