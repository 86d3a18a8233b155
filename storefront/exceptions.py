"""
Storefront exceptions.

Each exception carries a machine-readable ``code`` (the error taxonomy),
the HTTP status it maps to, a short ``reason`` for clients and a
user-facing message. Messages are German because the storefront serves the
German market first; internal details stay in the logs.
"""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    code = "STOREFRONT_ERROR"
    status_code = 500
    reason = "error"
    default_message = "Ein unerwarteter Fehler ist aufgetreten."
    # details safe to return to the client
    expose_details = False

    def __init__(self, message: str = None, reason: str = None, **details):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        if reason:
            self.reason = reason
        self.details = details


class ConfigUnavailableError(StorefrontError):
    """A dependent external service has no usable credentials."""

    code = "CONFIG_UNAVAILABLE"
    status_code = 503
    reason = "unavailable"
    default_message = "Der Dienst ist vorübergehend nicht verfügbar. Bitte versuchen Sie es später erneut."


class ValidationError(StorefrontError):
    code = "VALIDATION_ERROR"
    status_code = 400
    reason = "invalid"
    default_message = "Ungültige Anfragedaten"


class RateLimitedError(StorefrontError):
    code = "RATE_LIMITED"
    status_code = 429
    reason = "ratelimit"
    default_message = "Zu viele Anfragen. Bitte versuchen Sie es in 5 Minuten erneut."


class NotFoundError(StorefrontError):
    code = "NOT_FOUND"
    status_code = 404
    reason = "not_found"
    default_message = "Lizenzschlüssel nicht gefunden"


class ForbiddenError(StorefrontError):
    code = "FORBIDDEN"
    status_code = 403
    reason = "forbidden"
    default_message = "Ungültiger oder abgelaufener Download-Token. Bitte fordern Sie einen neuen Link an."


class EmailMismatchError(ForbiddenError):
    code = "EMAIL_MISMATCH"
    reason = "email_mismatch"
    default_message = "E-Mail-Adresse stimmt nicht mit der Lizenz überein"


class LicenseExpiredError(ForbiddenError):
    code = "EXPIRED"
    reason = "expired"
    default_message = "Lizenz ist abgelaufen"


class PaymentIncompleteError(StorefrontError):
    code = "PAYMENT_INCOMPLETE"
    status_code = 400
    reason = "payment_incomplete"
    default_message = "Zahlung nicht abgeschlossen"
    expose_details = True


class UpstreamError(StorefrontError):
    """Payment processor, mail transport or storage failure."""

    code = "UPSTREAM_FAILURE"
    status_code = 500
    reason = "upstream"


class PaymentProviderError(UpstreamError):
    default_message = "Die Zahlung konnte nicht verarbeitet werden."


class MailDeliveryError(UpstreamError):
    reason = "network"
    default_message = "Leider konnte die E-Mail nicht versendet werden. Bitte versuchen Sie es später erneut."


class StorageError(UpstreamError):
    default_message = "Serverfehler bei der Lizenzvalidierung"


class LicenseDeliveryError(UpstreamError):
    """Payment went through but the license email could not be sent."""

    expose_details = True
    default_message = (
        "Ihre Zahlung war erfolgreich, aber die Lizenz-E-Mail konnte nicht versendet werden. "
        "Bitte kontaktieren Sie uns, wir senden Ihnen Ihren Lizenzschlüssel manuell zu."
    )
