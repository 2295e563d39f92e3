import pytest

from conftest import FakeEmailSender, FakeUserStore, make_appointment

from clinic.core.models import NotificationType
from clinic.notifications import NotificationDispatcher, NotificationStore
from clinic.notifications.dispatcher import is_valid_email


class TestDispatch:
    """Dispatching appointment events"""

    @pytest.mark.asyncio
    async def test_created_event_stores_notification_and_sends_email(
        self,
        dispatcher: NotificationDispatcher,
        notification_store: NotificationStore,
        email_sender: FakeEmailSender,
    ):
        appointment = make_appointment()

        assert await dispatcher.dispatch(NotificationType.APPOINTMENT_CREATED, appointment)

        [notification] = notification_store.get_user_notifications("patient-1")
        assert notification.type == NotificationType.APPOINTMENT_CREATED
        assert notification.appointment_id == "1"
        assert notification.title == "Appointment Confirmed"
        assert "Dr. Gregory House" in notification.message
        assert notification.email_sent is True

        [email] = email_sender.sent
        assert email["to_email"] == "jane.roe@clinicmail.com"
        assert email["to_name"] == "Jane Roe"
        assert email["subject"] == "Appointment Confirmation - Riverside Clinic"

    @pytest.mark.asyncio
    async def test_missing_email_falls_back_and_keeps_flag_false(
        self,
        notification_store: NotificationStore,
        email_sender: FakeEmailSender,
    ):
        dispatcher = NotificationDispatcher(
            notification_store,
            FakeUserStore(),
            email_sender,
            fallback_email="frontdesk@clinicmail.com",
        )

        result = await dispatcher.dispatch(
            NotificationType.APPOINTMENT_REMINDER,
            make_appointment(),
        )

        assert result is True
        assert email_sender.sent[0]["to_email"] == "frontdesk@clinicmail.com"
        [notification] = notification_store.get_user_notifications("patient-1")
        assert notification.email_sent is False

    @pytest.mark.asyncio
    async def test_malformed_email_falls_back(
        self,
        notification_store: NotificationStore,
        email_sender: FakeEmailSender,
    ):
        dispatcher = NotificationDispatcher(
            notification_store,
            FakeUserStore({"patient-1": "not-an-email"}),
            email_sender,
            fallback_email="frontdesk@clinicmail.com",
        )

        await dispatcher.dispatch(NotificationType.APPOINTMENT_CREATED, make_appointment())

        assert email_sender.sent[0]["to_email"] == "frontdesk@clinicmail.com"
        assert notification_store.get_user_notifications("patient-1")[0].email_sent is False

    @pytest.mark.asyncio
    async def test_user_store_error_does_not_raise(
        self,
        dispatcher: NotificationDispatcher,
        user_store: FakeUserStore,
        notification_store: NotificationStore,
    ):
        user_store.error = ConnectionError("users table unavailable")

        await dispatcher.dispatch(NotificationType.APPOINTMENT_CREATED, make_appointment())

        [notification] = notification_store.get_user_notifications("patient-1")
        assert notification.email_sent is False

    @pytest.mark.asyncio
    async def test_transport_failure_keeps_in_app_notification(
        self,
        dispatcher: NotificationDispatcher,
        email_sender: FakeEmailSender,
        notification_store: NotificationStore,
    ):
        email_sender.result = False

        result = await dispatcher.dispatch(
            NotificationType.APPOINTMENT_CANCELLED,
            make_appointment(),
        )

        assert result is False
        [notification] = notification_store.get_user_notifications("patient-1")
        assert notification.type == NotificationType.APPOINTMENT_CANCELLED
        assert notification.email_sent is False

    @pytest.mark.asyncio
    async def test_sender_exception_is_contained(
        self,
        dispatcher: NotificationDispatcher,
        email_sender: FakeEmailSender,
        notification_store: NotificationStore,
    ):
        email_sender.error = OSError("connection refused")

        result = await dispatcher.dispatch(
            NotificationType.APPOINTMENT_MODIFIED,
            make_appointment(),
        )

        assert result is False
        assert len(notification_store) == 1

    @pytest.mark.asyncio
    async def test_completed_event_is_rejected(self, dispatcher: NotificationDispatcher):
        with pytest.raises(ValueError):
            await dispatcher.dispatch(
                NotificationType.APPOINTMENT_COMPLETED,
                make_appointment(),
            )


class TestDedupe:
    """Re-running a dispatch for the same appointment and event"""

    @pytest.mark.asyncio
    async def test_delivered_notification_is_not_sent_again(
        self,
        dispatcher: NotificationDispatcher,
        email_sender: FakeEmailSender,
        notification_store: NotificationStore,
    ):
        appointment = make_appointment()

        await dispatcher.dispatch(
            NotificationType.APPOINTMENT_REMINDER,
            appointment,
            dedupe=True,
        )
        await dispatcher.dispatch(
            NotificationType.APPOINTMENT_REMINDER,
            appointment,
            dedupe=True,
        )

        assert len(email_sender.sent) == 1
        assert len(notification_store) == 1

    @pytest.mark.asyncio
    async def test_failed_email_is_retried_on_same_notification(
        self,
        dispatcher: NotificationDispatcher,
        email_sender: FakeEmailSender,
        notification_store: NotificationStore,
    ):
        appointment = make_appointment()
        email_sender.result = False
        assert not await dispatcher.dispatch(
            NotificationType.APPOINTMENT_CREATED,
            appointment,
            dedupe=True,
        )

        email_sender.result = True
        assert await dispatcher.dispatch(
            NotificationType.APPOINTMENT_CREATED,
            appointment,
            dedupe=True,
        )

        assert len(email_sender.sent) == 2
        [notification] = notification_store.get_user_notifications("patient-1")
        assert notification.email_sent is True

    @pytest.mark.asyncio
    async def test_without_dedupe_every_dispatch_is_recorded(
        self,
        dispatcher: NotificationDispatcher,
        notification_store: NotificationStore,
    ):
        appointment = make_appointment()

        await dispatcher.send_appointment_modified(appointment)
        await dispatcher.send_appointment_modified(appointment)

        assert len(notification_store) == 2


@pytest.mark.parametrize(
    "email, expected",
    [
        ("jane.roe@clinicmail.com", True),
        ("  jane.roe@clinicmail.com ", True),
        ("jane.roe", False),
        ("", False),
        (None, False),
    ],
)
def test_is_valid_email(email, expected):
    assert is_valid_email(email) is expected
