"""Rewrite rules applied to raw record lines before they are split.

Preprocessing normalizes vendor names, repairs quoting, or reorders date
parts so that the rest of the pipeline sees a clean record.  It never
affects duplicate detection, which hashes the line as read.
"""

from __future__ import annotations

import logging

from csv2ledger.models import PreprocessRule

logger = logging.getLogger(__name__)


def apply(line: str, rules: list[PreprocessRule]) -> str:
    """Run every preprocess rule over *line*, in table order.

    A rule rewrites the line only when its ``match`` pattern matches the
    line as left by the earlier rules.  Later rules see the output of every
    earlier rule that fired.

    Args:
        line: A record line, without its line terminator.
        rules: Preprocess rules in table order.

    Returns:
        The rewritten line; *line* unchanged if no rule fired.
    """
    for rule in rules:
        if rule.match.search(line) is None:
            continue
        rewritten = rule.search.sub(rule.replace, line, count=rule.count)
        if rewritten != line:
            logger.debug("Preprocess %r: %r -> %r", rule.match.pattern, line, rewritten)
        line = rewritten
    return line
