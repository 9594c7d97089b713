from dataclasses import dataclass

from flask import current_app

from email_utils import MailSender
from notifications import PushSender


@dataclass
class Services:
    """Process-wide collaborators, built once in ``create_app``."""
    push: PushSender
    mailer: MailSender
    avatars_enabled: bool = False


def get_services():
    return current_app.extensions['timetracker']
