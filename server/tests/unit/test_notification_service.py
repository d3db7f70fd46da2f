"""Unit tests for notification delivery."""

import pytest
from sqlalchemy.exc import OperationalError

from excursion_booking.core.exceptions import AuthorizationError
from excursion_booking.services.notification_service import NotificationService


@pytest.mark.asyncio
async def test_deliver_and_list(test_session, catalogue, customer_actor):
    """Delivered notifications are listed newest first."""
    service = NotificationService(test_session)

    assert await service.deliver([(catalogue.customer, "first")])
    assert await service.deliver([(catalogue.customer, "second"), (catalogue.guide, "for guide")])

    notifications = await service.list_for_user(customer_actor, catalogue.customer)

    assert [n.message for n in notifications] == ["second", "first"]


@pytest.mark.asyncio
async def test_list_other_users_notifications(test_session, catalogue, customer_actor):
    service = NotificationService(test_session)

    with pytest.raises(AuthorizationError):
        await service.list_for_user(customer_actor, catalogue.guide)


@pytest.mark.asyncio
async def test_deliver_failure_is_swallowed(test_session, catalogue, customer_actor, monkeypatch):
    """A storage failure loses the notifications but never raises."""
    service = NotificationService(test_session)
    customer_id = catalogue.customer

    async def failing_commit():
        raise OperationalError("INSERT INTO notifications", {}, Exception("disk full"))

    monkeypatch.setattr(test_session, "commit", failing_commit)

    assert await service.deliver([(customer_id, "lost")]) is False

    monkeypatch.undo()
    assert await service.list_for_user(customer_actor, customer_id) == []
