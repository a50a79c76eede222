"""Render every transactional email and send it to one address for a visual check.

Usage: python scripts/send_test_emails.py you@example.com
"""

from __future__ import annotations

from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from services.mail import (
    send_forgot_password_email,
    send_password_changed_email,
    send_verification_email,
    send_welcome_email,
)
from services.verification import generate_verification_code

SAMPLE_USER_NAME = "Test User"


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print(__doc__.strip().splitlines()[-1])
        return 2

    to = argv[1]
    app = create_app()
    with app.app_context():
        results = {
            "verification": send_verification_email(
                to, SAMPLE_USER_NAME, generate_verification_code()
            ),
            "password reset": send_forgot_password_email(
                to, SAMPLE_USER_NAME, generate_verification_code()
            ),
            "password changed": send_password_changed_email(to, SAMPLE_USER_NAME),
            "welcome": send_welcome_email(to, SAMPLE_USER_NAME),
        }
    for template, message_id in results.items():
        print(f"{template}: {message_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
