"""
Contact form submissions.

Bot filtering is invisible to the caller: a submission caught by one of the
guards gets the same ``{"success": true}`` as a delivered message, and no
mail is sent.
"""

import logging
import time
from typing import Callable, List, Optional

from .exceptions import ConfigUnavailableError, RateLimitedError, ValidationError
from .models import ContactRequest, ContactResponse
from .notifications import NotificationService
from .rate_limit import RateLimiter

logger = logging.getLogger(__name__)

MIN_FILL_TIME_MS = 3000

# A guard returns True when the submission should be dropped silently.
Guard = Callable[[ContactRequest, float], bool]


def honeypot_filled(form: ContactRequest, now_ms: float) -> bool:
    return bool(form.hp and form.hp.strip())


def filled_too_fast(form: ContactRequest, now_ms: float) -> bool:
    return form.ts is not None and now_ms - form.ts < MIN_FILL_TIME_MS


DEFAULT_GUARDS: List[Guard] = [honeypot_filled, filled_too_fast]


class ContactService:
    def __init__(
        self,
        notifications: NotificationService,
        limiter: RateLimiter,
        recipient: str,
        min_message_length: int = 5,
        guards: Optional[List[Guard]] = None,
        clock_ms: Callable[[], float] = lambda: time.time() * 1000,
    ):
        self.notifications = notifications
        self.limiter = limiter
        self.recipient = recipient
        self.min_message_length = min_message_length
        self.guards = DEFAULT_GUARDS if guards is None else guards
        self._clock_ms = clock_ms

    def submit(self, form: ContactRequest, client_ip: str = "0.0.0.0") -> ContactResponse:
        if not self.notifications.configured:
            raise ConfigUnavailableError("E-Mail-System vorübergehend nicht verfügbar.")
        if len(form.message.strip()) < self.min_message_length:
            raise ValidationError()

        now_ms = self._clock_ms()
        for guard in self.guards:
            if guard(form, now_ms):
                logger.info("Contact submission from %s dropped by %s", client_ip, guard.__name__)
                return ContactResponse(success=True)

        if not self.limiter.check(client_ip):
            raise RateLimitedError()

        fallback = self.notifications.send_contact_message(
            form.name, form.email, form.message, to=self.recipient
        )
        logger.info("Contact message from %s delivered", client_ip)
        return ContactResponse(success=True, fallback=True if fallback else None)
