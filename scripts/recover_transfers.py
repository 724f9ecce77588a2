#!/usr/bin/env python3
"""
Finish transfers whose two asset updates were interrupted.

Every transfer create/cancel writes a transfer intent whose step advances
together with each asset update. This script resumes any intent that is not
completed. It is idempotent and also runs on application startup unless
RECOVER_TRANSFERS_ON_STARTUP=false.

Usage:
    python3 scripts/recover_transfers.py
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from mams.core.config import settings
from mams.core.database.session import async_session
from mams.core.logging import configure_logging
from mams.modules.transfers.service import TransferService


async def main() -> None:
    configure_logging(settings.log_level)
    logging.getLogger(__name__).info(
        "Database: %s",
        settings.database_url.split("@")[-1] if "@" in settings.database_url else "?",
    )
    async with async_session() as session:
        recovered = await TransferService(session).recover_incomplete()
    print(f"Recovered {recovered} transfer intent(s).")


if __name__ == "__main__":
    asyncio.run(main())
