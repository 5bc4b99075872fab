from __future__ import annotations

import copy
import logging
import re
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import ImportSettings
from .database import ContactDatabase
from .io import iter_card_bodies, normalize_text
from .labels import LabelTranslator
from .matcher import match_contact
from .merge import merge_into
from .normalize import parse_card

logger = logging.getLogger(__name__)

CREATED = "created"
UPDATED = "updated"
FAILED = "failed"


@dataclass(frozen=True)
class CardOutcome:
    index: int                    # 1-based position of the card in the input
    name: str
    outcome: str                  # created | updated | failed
    record_id: str | None = None
    tier: str | None = None       # matcher attempt that found the record
    message: str = ""


@dataclass
class ImportReport:
    outcomes: list[CardOutcome] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        c = Counter(o.outcome for o in self.outcomes)
        return {k: c.get(k, 0) for k in (CREATED, UPDATED, FAILED)}

    @property
    def created(self) -> int:
        return self.counts()[CREATED]

    @property
    def updated(self) -> int:
        return self.counts()[UPDATED]

    @property
    def failed(self) -> int:
        return self.counts()[FAILED]


def import_card(
    body: str,
    db: ContactDatabase,
    translator: LabelTranslator,
    skip: re.Pattern[str] | None = None,
    index: int = 1,
) -> CardOutcome:
    """Parse, match, merge and commit a single card body."""
    parsed = parse_card(body, translator)
    match = match_contact(db, parsed)
    if match.record is not None:
        record, is_update = copy.deepcopy(match.record), True
    else:
        record, is_update = db.create_blank_record(), False

    merge_into(record, parsed, skip)
    db.commit(record, is_update)
    return CardOutcome(
        index=index,
        name=record.fullname or parsed.display_name,
        outcome=UPDATED if is_update else CREATED,
        record_id=record.id,
        tier=match.tier.value if match.tier else None,
    )


def import_vcards(
    text: str,
    db: ContactDatabase,
    settings: ImportSettings | None = None,
    notify: Callable[[CardOutcome], None] | None = None,
) -> ImportReport:
    """Import every card in *text*; a failing card is logged and skipped."""
    settings = settings or ImportSettings()
    translator = settings.translator()
    skip = settings.skip_regex()
    report = ImportReport()

    for index, body in enumerate(iter_card_bodies(normalize_text(text)), start=1):
        try:
            outcome = import_card(body, db, translator, skip, index=index)
        except Exception as exc:
            logger.exception("card %d could not be imported", index)
            outcome = CardOutcome(index=index, name=f"card {index}", outcome=FAILED, message=str(exc))
        else:
            logger.info("card %d: %s %s", index, outcome.outcome, outcome.name)
        report.outcomes.append(outcome)
        if notify is not None:
            notify(outcome)

    if not report.outcomes:
        logger.warning("no vCard found in input")
    return report
