import logging

from affiliate_ledger.core.email_sender import ConsoleEmailSender, get_email_sender, set_email_sender


def test_console_sender_logs_without_keeping_messages(caplog):
    sender = ConsoleEmailSender()

    with caplog.at_level(logging.INFO, logger="affiliate_ledger.core.email_sender"):
        for i in range(50):
            assert sender.send_email("ops@example.com", f"Order {i} processed", "body") is True

    assert vars(sender) == {}
    assert "Order 49 processed" in caplog.text


def test_default_sender_is_console():
    set_email_sender(None)
    assert isinstance(get_email_sender(), ConsoleEmailSender)
