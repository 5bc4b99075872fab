"""Find the existing record an incoming card belongs to.

Three attempts, most specific first; the first one that finds anything wins:

  1. company  → email → name
  2. company  → name
  3. email    → name

Each attempt narrows the full record list one field at a time. An attempt
whose fields are missing from the card is skipped. Without a name nothing is
queried at all and the card always becomes a new record.
"""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass

from .database import ContactDatabase
from .model import ContactRecord, ParsedContact

logger = logging.getLogger(__name__)


class MatchState(enum.Enum):
    NO_ATTEMPT = "no attempt"
    ATTEMPT_1 = "company+email+name"
    ATTEMPT_2 = "company+name"
    ATTEMPT_3 = "email+name"
    MATCHED = "matched"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class MatchOutcome:
    record: ContactRecord | None
    state: MatchState
    tier: MatchState | None = None     # the attempt that matched

    @property
    def matched(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class MatchQueries:
    name: str | None = None
    company: str | None = None
    net: str | None = None


_TIERS: tuple[tuple[MatchState, tuple[str, ...]], ...] = (
    (MatchState.ATTEMPT_1, ("company", "net", "name")),
    (MatchState.ATTEMPT_2, ("company", "name")),
    (MatchState.ATTEMPT_3, ("net", "name")),
)


def build_queries(parsed: ParsedContact) -> MatchQueries:
    name = None
    bare = parsed.search_name or parsed.name
    if bare:
        parts = [re.escape(p) for p in bare if p]
        name = ".*".join(parts) or None
    company = re.escape(parsed.organization) if parsed.organization else None
    net = None
    if parsed.emails:
        net = "^(?:" + "|".join(re.escape(e) for e in parsed.emails) + ")$"
    return MatchQueries(name=name, company=company, net=net)


def find_match(
    db: ContactDatabase,
    name_query: str | None,
    org_query: str | None,
    email_query: str | None,
) -> MatchOutcome:
    if not name_query:
        return MatchOutcome(None, MatchState.UNMATCHED)

    queries = {"name": name_query, "company": org_query, "net": email_query}
    for tier, fields in _TIERS:
        if any(not queries[f] for f in fields):
            continue
        found = db.all_records()
        for f in fields:
            found = db.query(found, **{f: queries[f]})
            if not found:
                break
        logger.debug("%s: %d candidate(s)", tier.value, len(found))
        if found:
            if len(found) > 1:
                logger.debug("%s is ambiguous, taking the first of %d", tier.value, len(found))
            return MatchOutcome(found[0], MatchState.MATCHED, tier)
    logger.debug("no match for %s", name_query)
    return MatchOutcome(None, MatchState.UNMATCHED)


def match_contact(db: ContactDatabase, parsed: ParsedContact) -> MatchOutcome:
    q = build_queries(parsed)
    return find_match(db, q.name, q.company, q.net)
