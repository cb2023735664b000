"""Send the diagnostic email from the command line."""
from __future__ import annotations

import argparse

from pagecomments.core.errors import ValidationError
from pagecomments.core.logging import configure_logging
from pagecomments.services.mailer import get_mail_transport, send_test_email


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send a test email through the SMTP relay")
    parser.add_argument("email", help="Recipient address")
    parser.add_argument("--page-url", default="/", help="Page URL to mention in the body")
    args = parser.parse_args(argv)
    configure_logging()

    try:
        delivered = send_test_email(get_mail_transport(), args.email, args.page_url)
    except ValidationError as exc:
        print(f"Error: {exc.message}")
        return 1
    if not delivered:
        print("Failed to send email. Check SMTP settings.")
        return 1
    print(f"Test email sent to {args.email}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
