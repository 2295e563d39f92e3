#!/usr/bin/env python3
"""Script for running the past appointments status sweep by hand."""

import argparse
import asyncio

from loguru import logger

from clinic.db.engine import close_engine, create_engine, create_session_factory
from clinic.db.stores import SqlAppointmentStore


async def run_sweep(dry_run: bool = False) -> int:
    """Complete past scheduled appointments, or only list them with ``dry_run``."""
    engine = create_engine()
    store = SqlAppointmentStore(create_session_factory(engine))
    try:
        if dry_run:
            past_due = await store.list_past_due()
            for appointment in past_due:
                logger.info(
                    f"Would complete appointment {appointment.id} "
                    f"({appointment.date} {appointment.time}, "
                    f"{appointment.client_name} with {appointment.doctor_name})",
                )
            logger.success(f"{len(past_due)} appointments would be completed")
            return len(past_due)

        updated = await store.mark_completed_if_past_due()
        logger.success(f"Updated {updated} past appointments to completed")
        return updated
    finally:
        await close_engine(engine)


async def main() -> None:
    """Main function."""
    parser = argparse.ArgumentParser(
        description="Complete scheduled appointments that are already in the past",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only list the appointments that would be completed",
    )

    args = parser.parse_args()

    await run_sweep(args.dry_run)


if __name__ == "__main__":
    asyncio.run(main())
