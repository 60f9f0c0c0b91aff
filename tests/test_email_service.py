import asyncio

from talenthunt.models.verification_code import EMAIL_VERIFICATION, PASSWORD_RESET
from talenthunt.services.email_service import EmailDispatcher, env


def test_templates_render_with_their_context():
    html = env.get_template("verify_email.html").render(name="Ada", token="4821", expires_minutes=10)
    assert "4821" in html
    assert "Ada" in html

    html = env.get_template("tickets.html").render(
        name="Efe",
        purchase_reference="TKT-1",
        ticket_numbers=["ETH-VIP-AB12CD34"],
        items=[{"ticket_type": "vip", "quantity": 1}],
    )
    assert "ETH-VIP-AB12CD34" in html


def test_suppressed_sends_report_success():
    dispatcher = EmailDispatcher()
    assert asyncio.run(dispatcher.send_code("ada@example.com", "4821", EMAIL_VERIFICATION, "Ada")) is True
    assert asyncio.run(dispatcher.send_code("ada@example.com", "4821", PASSWORD_RESET)) is True
    assert asyncio.run(
        dispatcher.send_invitation("guest@example.com", "Guest", "Ada Obi", "BULK-ETH-1", "1234")
    ) is True


def test_missing_template_is_reported_not_raised():
    dispatcher = EmailDispatcher()
    assert asyncio.run(dispatcher._send_template("ada@example.com", "Oops", "missing.html")) is False
