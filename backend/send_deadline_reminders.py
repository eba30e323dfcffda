#!/usr/bin/env python3
"""
Send reminder e-mails to editors whose documents are still in editing
and whose deadline falls inside the reminder window.

Usage:
  python send_deadline_reminders.py [--hours 24] [--dry-run]

Cron example (hourly):
  0 * * * * cd /path/to/backend && python send_deadline_reminders.py >> reminders.log 2>&1
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from sqlmodel import Session

from coworks.core.config import settings
from coworks.core.logging_setup import logger
from coworks.db.session import engine
from coworks.services.reminders import DeadlineReminderService


def main() -> int:
    parser = argparse.ArgumentParser(description="Send deadline reminder e-mails")
    parser.add_argument(
        "--hours",
        type=int,
        default=settings.deadline_reminder_hours,
        help=f"Reminder window in hours (default: {settings.deadline_reminder_hours})",
    )
    parser.add_argument("--dry-run", action="store_true", help="Only list the documents that would be reminded")
    args = parser.parse_args()

    with Session(engine) as session:
        service = DeadlineReminderService(session, window_hours=args.hours)
        if args.dry_run:
            for message in service.build_messages():
                logger.info("Would remind %s about '%s' (due %s)", message.recipient_email, message.document_title, message.deadline)
            return 0
        sent = service.send_reminders()
    logger.info("Deadline reminders sent: %d", sent)
    return 0


if __name__ == "__main__":
    sys.exit(main())
