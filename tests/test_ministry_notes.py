from church_admin.services.ministry_notes import (
    clean_leaders,
    compose_notes,
    parse_notes,
    replace_leader_lines,
)


def test_compose_then_parse():
    notes = compose_notes(
        leaders=["Ann", " Ben ", "Ann", ""],
        requirements="Must attend orientation",
        contact_email="youth@example.org",
        contact_phone=None,
    )
    assert notes.splitlines() == [
        "Requirements: Must attend orientation",
        "Contact Email: youth@example.org",
        "Leader: Ann",
        "Leader: Ben",
    ]

    parsed = parse_notes(notes)
    assert parsed.leaders == ["Ann", "Ben"]
    assert parsed.requirements == "Must attend orientation"
    assert parsed.contact_email == "youth@example.org"
    assert parsed.contact_phone is None


def test_compose_nothing_is_none():
    assert compose_notes(leaders=[" "]) is None


def test_parse_keeps_free_text():
    parsed = parse_notes("Meets after service\nLeader: Pastor Mike\nAssistant: Sarah")
    assert parsed.leaders == ["Pastor Mike"]
    assert parsed.free_text == ["Meets after service", "Assistant: Sarah"]
    assert parse_notes(None).leaders == []


def test_replace_leader_lines():
    notes = "Requirements: Be kind\nLeader: Ann\nLeader: Ben"
    assert replace_leader_lines(notes, ["Cara"]) == "Requirements: Be kind\nLeader: Cara"
    assert replace_leader_lines(None, []) is None


def test_clean_leaders():
    assert clean_leaders([None, " Ann", "Ann ", "Ben"]) == ["Ann", "Ben"]
