"""
Email delivery of agenda messages through MS Graph.
"""

from datetime import date

from msgraph.generated.models.body_type import BodyType
from msgraph.generated.models.email_address import EmailAddress
from msgraph.generated.models.item_body import ItemBody
from msgraph.generated.models.message import Message
from msgraph.generated.models.recipient import Recipient
from msgraph.generated.users.item.send_mail.send_mail_post_request_body import (
    SendMailPostRequestBody,
)

from core.config import GraphConfig
from core.graph_client import get_graph_client
from core.logging import get_logger

logger = get_logger(__name__)


class EmailDeliveryError(Exception):
    """Raised when Graph refuses to send the agenda email."""


def format_date_for_subject(d: date) -> str:
    """Format date for email subject, e.g. 'Nov 7th 2025'."""
    day = d.day
    suffix = "th" if 11 <= day <= 13 else {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
    return d.strftime(f"%b {day}{suffix} %Y")


def build_agenda_message(config: GraphConfig, text: str, as_of_date: date) -> Message:
    return Message(
        subject=f"Daily agenda {format_date_for_subject(as_of_date)}",
        body=ItemBody(content_type=BodyType.Text, content=text),
        to_recipients=[Recipient(email_address=EmailAddress(address=config.to_email))],
    )


async def send_agenda_email(config: GraphConfig, text: str, as_of_date: date) -> bool:
    """Send the agenda as a plain-text email."""
    graph = get_graph_client(config)
    request_body = SendMailPostRequestBody(
        message=build_agenda_message(config, text, as_of_date),
        save_to_sent_items=True,
    )

    try:
        await graph.users.by_user_id(config.from_email).send_mail.post(request_body)
    except Exception as e:
        raise EmailDeliveryError(f"Graph sendMail failed: {e}") from e

    logger.info("Sent agenda email", to=config.to_email)
    return True
