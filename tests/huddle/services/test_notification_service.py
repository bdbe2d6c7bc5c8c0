import pytest
from huddle.core.database import build_engine, init_db, make_session_factory
from huddle.core.exceptions import NotificationNotFoundError
from huddle.services.notification_ledger import NotificationLedger
from huddle.services.notification_service import NotificationService
from huddle.services.notification_store import NotificationStore
from sqlmodel import Session


def _session() -> Session:
    engine = build_engine("sqlite://")
    init_db(engine)
    return make_session_factory(engine)()


def _service_with_rows(count: int) -> tuple[NotificationService, NotificationLedger]:
    store = NotificationStore(_session())
    ledger = NotificationLedger(store)
    for n in range(count):
        ledger.record_team_update("u1", f"t{n}", f"Team {n}")
    return NotificationService(store), ledger


def test_list_paginates_with_has_more() -> None:
    service, _ = _service_with_rows(3)

    first = service.list_notifications("u1", page=1, limit=2)
    second = service.list_notifications("u1", page=2, limit=2)

    assert len(first.notifications) == 2
    assert first.pagination.has_more is True
    assert first.unread_count == 3
    assert len(second.notifications) == 1
    assert second.pagination.has_more is False


def test_list_clamps_limit() -> None:
    service, _ = _service_with_rows(1)

    page = service.list_notifications("u1", page=0, limit=10_000)

    assert page.pagination.page == 1
    assert page.pagination.limit == 100


def test_stats_and_mark_all_read() -> None:
    service, _ = _service_with_rows(2)

    assert service.mark_all_read("u1") == 2
    stats = service.stats("u1")
    assert stats.unread_count == 0
    assert stats.total_count == 2


def test_mark_read_rejects_foreign_notification() -> None:
    service, ledger = _service_with_rows(0)
    row = ledger.record_team_update("u2", "t1", "Core")

    with pytest.raises(NotificationNotFoundError):
        service.mark_read(row.id or 0, "u1")

    assert service.mark_read(row.id or 0, "u2").is_read is True


def test_delete_hides_notification() -> None:
    service, ledger = _service_with_rows(0)
    row = ledger.record_team_update("u1", "t1", "Core")

    service.delete(row.id or 0, "u1")

    assert service.stats("u1").total_count == 0
    with pytest.raises(NotificationNotFoundError):
        service.delete(row.id or 0, "u1")
    assert service.delete_all("u1") == 0
