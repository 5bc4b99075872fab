"""Tests for matching, merging and the per-card import loop."""
from __future__ import annotations

import re
from pathlib import Path

from vcard_import.config import ImportSettings
from vcard_import.database import JsonContactDatabase
from vcard_import.errors import ContactDatabaseError
from vcard_import.importer import CREATED, FAILED, UPDATED, import_vcards
from vcard_import.labels import LabelTranslator
from vcard_import.matcher import MatchState, build_queries, find_match, match_contact
from vcard_import.merge import merge_into
from vcard_import.model import ContactRecord, Phone
from vcard_import.normalize import parse_card

# ── helpers ────────────────────────────────────────────────────────────────────

def _vcard(*props: str) -> str:
    return "\r\n".join(["BEGIN:VCARD", "VERSION:3.0", *props, "END:VCARD"]) + "\r\n"


def _db(*records: ContactRecord) -> JsonContactDatabase:
    return JsonContactDatabase(records=list(records))


def _record(**kwargs) -> ContactRecord:
    kwargs.setdefault("id", "r1")
    return ContactRecord(**kwargs)


def _parsed(*props: str):
    return parse_card("\n".join(["VERSION:3.0", *props]), LabelTranslator())


class FlakyDatabase(JsonContactDatabase):
    """Fails the first commit only."""

    def __init__(self, *records):
        super().__init__(records=list(records))
        self.calls = 0

    def commit(self, record, is_update):
        self.calls += 1
        if self.calls == 1:
            raise ContactDatabaseError("disk full")
        super().commit(record, is_update)


class SaveFailsOnce(JsonContactDatabase):
    """Fails the first write to disk only."""

    def __init__(self, path):
        super().__init__(path)
        self.writes = 0

    def _write(self, records):
        self.writes += 1
        if self.writes == 1:
            raise ContactDatabaseError("disk full")
        super()._write(records)


# ── Matcher ────────────────────────────────────────────────────────────────────

def test_queries_from_card():
    q = build_queries(_parsed("N:Doe;Jane;;;", "ORG:Acme", "EMAIL:j@acme.com"))
    assert q.name == "Jane.*Doe"
    assert q.company == "Acme"
    assert q.net is not None and "acme" in q.net


def test_no_name_means_no_match():
    db = _db(_record(firstname="Jane", lastname="Doe", company="Acme"))
    outcome = find_match(db, None, "Acme", None)
    assert outcome.record is None
    assert outcome.state is MatchState.UNMATCHED


def test_tier1_company_email_name():
    target = _record(id="a", firstname="Jane", lastname="Doe", company="Acme", net=["j@acme.com"])
    other = _record(id="b", firstname="Jane", lastname="Doe", company="Acme", net=["x@acme.com"])
    outcome = match_contact(_db(other, target), _parsed("N:Doe;Jane;;;", "ORG:Acme", "EMAIL:j@acme.com"))
    assert outcome.record is target
    assert outcome.tier is MatchState.ATTEMPT_1


def test_tier2_company_name():
    rec = _record(firstname="Jane", lastname="Doe", company="Acme")
    outcome = match_contact(_db(rec), _parsed("N:Doe;Jane;;;", "ORG:Acme", "EMAIL:new@acme.com"))
    assert outcome.record is rec
    assert outcome.tier is MatchState.ATTEMPT_2


def test_tier3_email_name():
    rec = _record(firstname="Jane", lastname="Doe", company="Old Co", net=["j@acme.com"])
    outcome = match_contact(_db(rec), _parsed("N:Doe;Jane;;;", "ORG:New Co", "EMAIL:j@acme.com"))
    assert outcome.record is rec
    assert outcome.tier is MatchState.ATTEMPT_3


def test_prefix_and_suffix_do_not_block_match():
    rec = _record(firstname="John", lastname="Smith", company="Acme")
    parsed = _parsed("N:Smith;John;;Dr.;Jr.", "ORG:Acme")
    assert build_queries(parsed).name == "John.*Smith"
    assert parsed.name == ("Dr. John", "Smith Jr.")
    assert match_contact(_db(rec), parsed).record is rec


def test_unmatched_has_no_tier():
    outcome = match_contact(_db(), _parsed("N:Doe;Jane;;;", "ORG:Acme"))
    assert outcome.state is MatchState.UNMATCHED
    assert outcome.tier is None


def test_name_alone_does_not_match():
    rec = _record(firstname="Jane", lastname="Doe")
    outcome = match_contact(_db(rec), _parsed("N:Doe;Jane;;;"))
    assert not outcome.matched


def test_name_matches_aka():
    rec = _record(firstname="J.", lastname="D.", aka=["Jane Doe"], company="Acme")
    outcome = match_contact(_db(rec), _parsed("N:Doe;Jane;;;", "ORG:Acme"))
    assert outcome.record is rec


def test_email_must_match_whole_address():
    rec = _record(firstname="Bob", lastname="Roe", net=["jimbob@x.com"])
    outcome = match_contact(_db(rec), _parsed("N:Roe;Bob;;;", "EMAIL:bob@x.com"))
    assert not outcome.matched


# ── Merger ─────────────────────────────────────────────────────────────────────

def test_merge_union_fields():
    rec = _record(
        aka=["Janie"],
        net=["j@acme.com"],
        phones=[Phone("Mobile", "555-1")],
    )
    parsed = _parsed(
        "N:Doe;Jane;;;", "FN:Jane Doe", "NICKNAME:Janie,JD",
        "EMAIL:j@acme.com", "EMAIL:jane@home.org",
        "TEL;TYPE=CELL:555-1", "TEL;TYPE=WORK:555-2",
    )
    merge_into(rec, parsed)
    assert (rec.firstname, rec.lastname) == ("Jane", "Doe")
    assert rec.aka == ["Janie", "JD", "Jane Doe"]
    assert rec.net == ["j@acme.com", "jane@home.org"]
    assert rec.phones == [Phone("Mobile", "555-1"), Phone("Office", "555-2")]


def test_merge_keeps_company_without_org():
    rec = _record(company="Acme")
    merge_into(rec, _parsed("N:Doe;Jane;;;"))
    assert rec.company == "Acme"


def test_merge_overwrites_company_with_org():
    rec = _record(company="Acme")
    merge_into(rec, _parsed("N:Doe;Jane;;;", "ORG:Globex"))
    assert rec.company == "Globex"


def test_merge_without_name_keeps_names():
    rec = _record(firstname="Jane", lastname="Doe")
    merge_into(rec, _parsed("EMAIL:j@x.com"))
    assert (rec.firstname, rec.lastname) == ("Jane", "Doe")


def test_notes_fixed_keys():
    rec = _record()
    merge_into(rec, _parsed(
        "N:Doe;Jane;;;", "URL:http://jane.example", "NOTE:one", "NOTE:two", "BDAY:1980-01-01",
    ))
    assert rec.notes == [
        ("www", "http://jane.example"),
        ("notes", "one;\ntwo"),
        ("anniversary", "1980-01-01 birthday"),
    ]


def test_existing_notes_get_vcard_notes():
    rec = _record(notes=[("notes", "met in 2001")])
    merge_into(rec, _parsed("N:Doe;Jane;;;", "NOTE:likes tea"))
    assert rec.notes == [("notes", "met in 2001"), ("vcard-notes", "likes tea")]


def test_unknown_property_goes_to_notes():
    rec = _record()
    merge_into(rec, _parsed("N:Doe;Jane;;;", "X-CUSTOM:foo"))
    assert ("x-custom", "foo") in rec.notes


def test_skip_pattern_drops_property():
    rec = _record()
    merge_into(rec, _parsed("N:Doe;Jane;;;", "X-CUSTOM:foo", "TITLE:CEO"), re.compile("^X-", re.I))
    assert [k for k, _ in rec.notes] == ["title"]


def test_extra_url_lands_in_notes():
    rec = _record()
    merge_into(rec, _parsed("URL:http://a", "URL:http://b"))
    assert rec.notes == [("www", "http://a"), ("url", "http://b")]


def test_notes_deduplicated_on_pair():
    rec = _record(notes=[("title", "CEO")])
    merge_into(rec, _parsed("TITLE:CEO", "TITLE:CTO"))
    assert rec.notes == [("title", "CEO"), ("title", "CTO")]


# ── Import loop ────────────────────────────────────────────────────────────────

CARD_A = _vcard("N:Doe;Jane;;;", "FN:Jane Doe", "ORG:Acme", "EMAIL:jane@acme.com")
CARD_B = _vcard("N:Doe;Jane;;;", "FN:Jane Doe", "ORG:Acme", "EMAIL:jdoe@gmail.com")


def test_import_creates_then_updates():
    db = _db()
    report = import_vcards(CARD_A + CARD_B, db)
    assert [o.outcome for o in report.outcomes] == [CREATED, UPDATED]
    assert len(db) == 1
    rec = db.all_records()[0]
    assert rec.net == ["jane@acme.com", "jdoe@gmail.com"]


def test_second_import_finds_same_record():
    db = _db()
    first = import_vcards(CARD_A, db).outcomes[0]
    second = import_vcards(CARD_B, db).outcomes[0]
    assert first.record_id == second.record_id
    assert second.tier == MatchState.ATTEMPT_2.value


def test_import_twice_is_stable():
    card = _vcard(
        "N:Doe;Jane;;;", "FN:Jane Doe", "NICKNAME:JD", "ORG:Acme",
        "EMAIL:jane@acme.com", "TEL;TYPE=CELL:555-1",
        "ADR;TYPE=WORK:;;1 Main St;Springfield;IL;62704;USA",
        "NOTE:hello", "X-CUSTOM:foo",
    )
    db = _db()
    import_vcards(card, db)
    before = db.all_records()[0].to_dict()
    report = import_vcards(card, db)
    assert report.outcomes[0].outcome == UPDATED
    assert len(db) == 1
    assert db.all_records()[0].to_dict() == before


def test_existing_note_example():
    rec = _record(firstname="Jane", lastname="Doe", company="Acme", notes=[("notes", "old")])
    db = _db(rec)
    import_vcards(_vcard("N:Doe;Jane;;;", "ORG:Acme", "NOTE:new"), db)
    assert db.get("r1").notes == [("notes", "old"), ("vcard-notes", "new")]
    assert rec.notes == [("notes", "old")]


def test_custom_property_and_skip_setting():
    db = _db()
    import_vcards(_vcard("N:Roe;Rick;;;", "X-CUSTOM:foo"), db)
    assert ("x-custom", "foo") in db.all_records()[0].notes

    db = _db()
    import_vcards(_vcard("N:Roe;Rick;;;", "X-CUSTOM:foo"), db, ImportSettings(skip_pattern="^X-"))
    assert all(k != "x-custom" for k, _ in db.all_records()[0].notes)


def test_nameless_cards_always_create():
    db = _db()
    card = _vcard("FN:Somebody", "EMAIL:s@x.com")
    report = import_vcards(card + card, db)
    assert [o.outcome for o in report.outcomes] == [CREATED, CREATED]
    assert len(db) == 2


def test_tier3_replaces_company():
    rec = _record(firstname="Jane", lastname="Doe", company="Old Co", net=["jane@acme.com"])
    db = _db(rec)
    import_vcards(_vcard("N:Doe;Jane;;;", "ORG:New Co", "EMAIL:jane@acme.com"), db)
    assert len(db) == 1
    assert db.get("r1").company == "New Co"


def test_failed_card_does_not_stop_import():
    db = FlakyDatabase()
    card2 = _vcard("N:Roe;Rick;;;")
    report = import_vcards(CARD_A + card2, db)
    assert [o.outcome for o in report.outcomes] == [FAILED, CREATED]
    assert report.failed == 1
    assert report.created == 1
    assert "disk full" in report.outcomes[0].message
    assert [r.lastname for r in db.all_records()] == ["Roe"]


def test_notify_once_per_card():
    seen = []
    import_vcards(CARD_A + CARD_B, _db(), notify=seen.append)
    assert [o.index for o in seen] == [1, 2]
    assert seen[0].name == "Jane Doe"


def test_no_cards():
    report = import_vcards("nothing to see here", _db())
    assert report.outcomes == []
    assert report.counts() == {CREATED: 0, UPDATED: 0, FAILED: 0}


def test_titled_card_updates_existing_record():
    db = _db(_record(firstname="John", lastname="Smith", company="Acme"))
    report = import_vcards(_vcard("N:Smith;John;;Dr.;Jr.", "ORG:Acme"), db)
    assert report.outcomes[0].outcome == UPDATED
    assert len(db) == 1


def test_failed_save_leaves_no_trace(tmp_path: Path):
    path = tmp_path / "contacts.json"
    db = SaveFailsOnce(path)
    report = import_vcards(_vcard("N:Doe;Jane;;;") + _vcard("N:Roe;Rick;;;"), db)
    assert [o.outcome for o in report.outcomes] == [FAILED, CREATED]
    names = [r.lastname for r in JsonContactDatabase.load(path).all_records()]
    assert names == ["Roe"]


def test_failed_update_keeps_stored_record():
    rec = _record(firstname="Jane", lastname="Doe", company="Acme")
    db = FlakyDatabase(rec)
    report = import_vcards(_vcard("N:Doe;Jane;;;", "ORG:Acme", "EMAIL:j@x.com"), db)
    assert report.outcomes[0].outcome == FAILED
    assert db.get("r1") is rec
    assert rec.net == []
