"""QuickHost client core: platform client, session and credit ticker, site
service, mailbox view and preview composer."""

from quickhost.client import QuickHostClient, Subscription
from quickhost.errors import QuickHostError, NotFound, ValidationError, BackendError
from quickhost.mail import MailboxView
from quickhost.session import Session, SessionState
from quickhost.sites import SiteService

__version__ = "0.1.0"

__all__ = [
    "QuickHostClient",
    "Subscription",
    "QuickHostError",
    "NotFound",
    "ValidationError",
    "BackendError",
    "MailboxView",
    "Session",
    "SessionState",
    "SiteService",
]
