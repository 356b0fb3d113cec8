from portfolio.models import ContactMessage
from portfolio.services.email_service import EmailService


def test_dry_run_records_message(ctx):
    result = EmailService().send_contact_message('Ann', 'ann@example.com', 'Hello', 'Portrait', dry_run=True)

    assert result == {'success': True, 'message_id': 'dry_run', 'error': None}
    contact = ContactMessage.query.one()
    assert contact.status == 'dry_run'
    assert contact.session_type == 'Portrait'


def test_params_are_escaped():
    html = EmailService()._substitute_params('<p>{{ params.NAME }}</p>', {'NAME': '<b>Ann</b>'})
    assert html == '<p>&lt;b&gt;Ann&lt;/b&gt;</p>'


def test_service_holds_no_app_reference():
    service = EmailService()
    assert not hasattr(service, 'app')
    assert not hasattr(service, 'init_app')
