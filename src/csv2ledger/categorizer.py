"""Account classification: rule matching and account defaulting.

Classification is a single ordered pass over the account rule table:

1. **Rule matching** -- Each rule's pattern is searched in the preprocessed
   record line.  The first rule that matches wins; later rules are never
   consulted, and no attempt is made to find a "more specific" rule.  The
   winning rule's fields are returned exactly as written in the table,
   including fields it leaves out.

2. **Defaulting** -- :func:`resolve_accounts` runs afterwards, once, and
   fills any account or category that is still missing or empty.  This is
   separate from the no-match fallback in :func:`classify` because a rule
   may match and still leave its source account blank.

Depends on ``models.py`` only.
"""

from __future__ import annotations

import logging

from csv2ledger.models import (
    UNKNOWN_CATEGORY,
    UNKNOWN_DESTINATION,
    AccountRule,
    Classification,
    Transaction,
)

logger = logging.getLogger(__name__)


def match_rules(line: str, rules: list[AccountRule]) -> AccountRule | None:
    """Return the first rule whose pattern is found in *line*, or ``None``."""
    for rule in rules:
        if rule.match.search(line):
            return rule
    return None


def classify(
    line: str,
    rules: list[AccountRule],
    default_source: str,
) -> Classification:
    """Choose source, destination and category for a record line.

    Args:
        line: The preprocessed record line.
        rules: Account rules in table order.
        default_source: Source account used when no rule matches.

    Returns:
        The matching rule's fields verbatim (``None`` where the rule left a
        field out), or ``(default_source, "Expense:Unknown", "Unknown")``
        if no rule matched.
    """
    rule = match_rules(line, rules)
    if rule is None:
        return Classification(
            source=default_source,
            destination=UNKNOWN_DESTINATION,
            category=UNKNOWN_CATEGORY,
        )
    logger.debug("Account rule %r matched %r", rule.match.pattern, line)
    return Classification(
        source=rule.source,
        destination=rule.destination,
        category=rule.category,
    )


def resolve_accounts(
    txn: Transaction,
    classification: Classification,
    default_source: str,
) -> Transaction:
    """Copy *classification* onto *txn*, defaulting anything missing or empty.

    Returns:
        *txn*, with ``source``, ``destination`` and ``category`` all set.
    """
    txn.source = classification.source or default_source
    txn.destination = classification.destination or UNKNOWN_DESTINATION
    txn.category = classification.category or UNKNOWN_CATEGORY
    return txn
