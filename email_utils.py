import base64
import logging

import requests

RESEND_URL = "https://api.resend.com/emails"


class MailSender:
    def __init__(self, api_key, sender, timeout=10):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout

    @property
    def enabled(self):
        return bool(self.api_key)

    def send(self, to, subject, html, attachments=None):
        """attachments: list of (filename, bytes). True when Resend accepted the message."""
        if not self.enabled:
            logging.info(f"Email disabled, not sending '{subject}' to {to}")
            return False
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json'
        }
        data = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if attachments:
            data["attachments"] = [
                {"filename": filename, "content": base64.b64encode(content).decode('ascii')}
                for filename, content in attachments
            ]

        try:
            response = requests.post(RESEND_URL, json=data, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logging.error(f"Error sending email to {to}: {e}")
            return False

        if response.ok:
            return True
        logging.error(f"Error sending email to {to}: {response.status_code} {response.text}")
        return False
