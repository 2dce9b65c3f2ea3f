"""Link scanned receipt files to transactions.

Receipt files are named ``YYYYMMDD_<vendor>_<dollars>_<cents><suffix>``,
for example ``20080808_Exxon_20_00.pdf`` or ``20080807_gas_20_00_2.jpg``.
The vendor part rarely matches the bank's description, so only the date
and the amount are used.  Since receipts are often dated a day or two away
from the bank's posting date, the date may be allowed to drift by a few
days (the fuzzy window).
"""

from __future__ import annotations

import logging
import os
import re
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path

logger = logging.getLogger(__name__)


def candidate_dates(txn_date: date, fuzzy_days: int) -> list[date]:
    """Dates a receipt may carry, nearest first.

    Returns ``2 * fuzzy_days + 1`` dates: *txn_date* itself, then for each
    distance ``1..fuzzy_days`` the day before and the day after.
    """
    dates = [txn_date]
    for offset in range(1, fuzzy_days + 1):
        dates.append(txn_date - timedelta(days=offset))
        dates.append(txn_date + timedelta(days=offset))
    return dates


def amount_token(amount: Decimal) -> str:
    """Format *amount* the way receipt filenames spell it: ``20.5`` -> ``20_50``."""
    return f"{abs(amount):.2f}".replace(".", "_")


def candidate_patterns(txn_date: date, amount: Decimal, fuzzy_days: int) -> list[re.Pattern]:
    """Filename patterns for each candidate date, in candidate order."""
    token = re.escape(amount_token(amount))
    return [
        re.compile(f"{candidate:%Y%m%d}_.*?_{token}[_.]")
        for candidate in candidate_dates(txn_date, fuzzy_days)
    ]


def attach(
    txn_date: date,
    amount: Decimal,
    search_root: Path,
    fuzzy_days: int = 0,
) -> list[str]:
    """Find the receipt file for a transaction under *search_root*.

    The tree is walked once in a stable order (directories and files
    sorted by name).  Each file name is tested against the candidate
    patterns, exact date first.  The first file that matches any candidate
    is the only one attached.

    Args:
        txn_date: Transaction date.
        amount: Transaction amount; the sign is ignored.
        search_root: Directory to search.
        fuzzy_days: How many days either side of *txn_date* to accept.

    Returns:
        A list with the matched path relative to *search_root* (``/``
        separated), or an empty list.
    """
    patterns = candidate_patterns(txn_date, amount, fuzzy_days)
    for path in _walk_files(search_root):
        for pattern in patterns:
            if pattern.search(path.name):
                relative = path.relative_to(search_root).as_posix()
                logger.info("Matched %s to %s %s", relative, txn_date.isoformat(), amount)
                return [relative]
    return []


def _walk_files(root: Path):
    """Yield files under *root* in a deterministic depth-first order."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for name in sorted(filenames):
            yield Path(dirpath) / name
