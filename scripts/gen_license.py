"""
Issue a license by hand (manual sales, re-delivery after a failed email).

    python scripts/gen_license.py <single|agency> <email> [paypal-order-id]
"""

import sys

from storefront.config import settings
from storefront.dependencies import build_services
from storefront.exceptions import StorefrontError
from storefront.logging_config import configure_logging


def issue(license_type, email, order_id=None):
    services = build_services(settings)
    return services.purchases.issue_license(license_type, email, order_id=order_id)


if __name__ == "__main__":
    if len(sys.argv) < 3:
        print(__doc__.strip())
        sys.exit(2)

    configure_logging(settings)
    order_id = sys.argv[3] if len(sys.argv) > 3 else None
    try:
        issuance = issue(sys.argv[1], sys.argv[2], order_id)
    except StorefrontError as e:
        print("Failed:", e.message, e.details or "")
        sys.exit(1)

    print("New key:", issuance.license.key)
    print("Type:", issuance.license.type)
    print("Skipped steps:", ", ".join(issuance.result.skipped) or "none")
