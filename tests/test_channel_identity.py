import pytest

from inoconnect.services.channel_identity import (
    direct_channel_id, group_channel_id, is_group_channel, pair_key, project_id_for_channel,
)


@pytest.mark.parametrize("a, b", [
    ("u1", "u2"),
    ("alice", "Bob"),
    ("9f3c", "0a77"),
    ("same-prefix", "same-prefix-longer"),
])
def test_direct_channel_id_is_order_independent(a, b):
    assert direct_channel_id(a, b) == direct_channel_id(b, a)


def test_direct_channel_id_sorts_lexicographically():
    assert direct_channel_id("zed", "amy") == "amy_zed"
    assert pair_key("u2", "u1") == "u1_u2"


def test_distinct_pairs_get_distinct_ids():
    assert direct_channel_id("u1", "u2") != direct_channel_id("u1", "u3")


@pytest.mark.parametrize("bad", ["", "a_b"])
def test_pair_key_rejects_ambiguous_ids(bad):
    with pytest.raises(ValueError):
        pair_key(bad, "u1")


def test_group_channel_round_trip():
    channel_id = group_channel_id("p1")
    assert is_group_channel(channel_id)
    assert project_id_for_channel(channel_id) == "p1"


def test_direct_channel_is_not_a_group():
    channel_id = direct_channel_id("u1", "u2")
    assert not is_group_channel(channel_id)
    assert project_id_for_channel(channel_id) is None
