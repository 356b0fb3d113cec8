"""
Email service for sending contact-form messages via Brevo API.

This module handles:
- Brevo API integration
- Template rendering with parameter substitution
- Logging every submission to the database
"""

import os
import re
from flask import current_app
from markupsafe import escape
import sib_api_v3_sdk
from sib_api_v3_sdk.rest import ApiException

from portfolio import db
from portfolio.models import ContactMessage

CONTACT_TEMPLATE = 'emails/contact_message.html'


class EmailService:
    """Service for sending emails via Brevo."""

    def __init__(self):
        self._api_instance = None

    @property
    def api_instance(self):
        """Get or create Brevo API instance."""
        if self._api_instance is None:
            api_key = os.environ.get('BREVO_API_KEY')
            if not api_key:
                raise ValueError("BREVO_API_KEY environment variable not set")

            configuration = sib_api_v3_sdk.Configuration()
            configuration.api_key['api-key'] = api_key
            self._api_instance = sib_api_v3_sdk.TransactionalEmailsApi(
                sib_api_v3_sdk.ApiClient(configuration)
            )
        return self._api_instance

    def _substitute_params(self, html_content: str, params: dict) -> str:
        """Replace {{ params.X }} placeholders with HTML-escaped values."""
        for key, value in params.items():
            pattern = r'\{\{\s*params\.' + key + r'\s*\}\}'
            html_content = re.sub(pattern, lambda _: str(escape(value)), html_content)
        return html_content

    def _read_template(self, template_file: str) -> str:
        """Read an email template file."""
        template_path = os.path.join(
            current_app.root_path, 'templates', template_file
        )
        with open(template_path, 'r', encoding='utf-8') as f:
            return f.read()

    def send_contact_message(
        self,
        name: str,
        email: str,
        message: str,
        session_type: str = None,
        dry_run: bool = False
    ) -> dict:
        """
        Email a contact-form submission to the site owner.

        Args:
            name: Visitor's name
            email: Visitor's email (used as reply-to)
            message: Message body
            session_type: Kind of shoot the visitor asked about
            dry_run: If True, don't actually send (for testing)

        Returns:
            dict with 'success', 'message_id', and 'error' keys
        """
        result = {
            'success': False,
            'message_id': None,
            'error': None
        }

        contact = ContactMessage(
            name=name,
            email=email,
            session_type=session_type or None,
            message=message,
            status='pending'
        )
        db.session.add(contact)

        if dry_run:
            contact.status = 'dry_run'
            contact.error_message = 'Dry run - email not sent'
            db.session.commit()
            result['success'] = True
            result['message_id'] = 'dry_run'
            return result

        try:
            recipient = current_app.config.get('CONTACT_RECIPIENT_EMAIL')
            if not recipient:
                raise ValueError("CONTACT_RECIPIENT_EMAIL is not configured")

            raw_html = self._read_template(CONTACT_TEMPLATE)
            html_content = self._substitute_params(raw_html, {
                'NAME': name,
                'EMAIL': email,
                'SESSION_TYPE': session_type or 'Not specified',
                'MESSAGE': message,
            })

            send_smtp_email = sib_api_v3_sdk.SendSmtpEmail(
                sender={"name": "Portfolio Contact Form", "email": current_app.config['CONTACT_SENDER_EMAIL']},
                to=[{"email": recipient}],
                reply_to={"email": email, "name": name},
                subject="New Message from Contact Form",
                html_content=html_content,
                text_content=message
            )

            # Send via Brevo
            api_response = self.api_instance.send_transac_email(send_smtp_email)

            contact.brevo_message_id = api_response.message_id
            contact.status = 'sent'
            db.session.commit()

            result['success'] = True
            result['message_id'] = api_response.message_id

        except ApiException as e:
            contact.status = 'failed'
            contact.error_message = str(e)
            db.session.commit()

            result['error'] = str(e)
            current_app.logger.error(f"Brevo API error: {e}")

        except (ValueError, OSError) as e:
            contact.status = 'failed'
            contact.error_message = str(e)
            db.session.commit()

            result['error'] = str(e)
            current_app.logger.error(f"Email send error: {e}")

        return result


# Global instance
email_service = EmailService()
