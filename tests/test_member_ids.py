from church_admin.services.member_ids import (
    convert_to_member_id_format,
    generate_member_id,
    is_valid_member_id,
)


def test_first_id():
    assert generate_member_id([], prefix="MKC", width=6) == "MKC000001"


def test_next_after_max_ignoring_foreign_ids():
    ids = ["MKC000001", "MKC000007", "legacy-1", "MKCabc", "MKC000003"]
    assert generate_member_id(ids, prefix="MKC", width=6) == "MKC000008"


def test_width_grows_past_padding():
    assert generate_member_id(["MK99"], prefix="MK", width=2) == "MK100"


def test_is_valid_member_id():
    assert is_valid_member_id("MKC000042", prefix="MKC", width=6)
    assert not is_valid_member_id("MKC42", prefix="MKC", width=6)
    assert not is_valid_member_id("ABC000042", prefix="MKC", width=6)
    assert not is_valid_member_id("", prefix="MKC", width=6)


def test_convert_legacy_ids():
    mapping = convert_to_member_id_format(["a1", "MKC000002", "b2"], prefix="MKC", width=6)
    assert mapping == {"a1": "MKC000001", "b2": "MKC000003"}
