from collections import Counter

import pytest

from linkit.shardcfg import (
    GID1,
    N_SHARDS,
    ShardConfig,
    ShardConfigError,
    from_string,
    key_to_shard,
)


def check_same_config(c1: ShardConfig, c2: ShardConfig) -> None:
    assert c1.num == c2.num
    assert c1.shards == c2.shards
    assert c1.groups == c2.groups


def assert_balanced(cfg: ShardConfig, expected_groups) -> None:
    counts = Counter(cfg.shards)
    assert set(counts) == set(expected_groups)
    per_group = [counts[g] for g in expected_groups]
    assert sum(per_group) == N_SHARDS
    assert max(per_group) - min(per_group) <= 1


def test_basic():
    gid1, gid2 = 1, 2
    cfg = ShardConfig()
    cfg.check_config([])

    cfg.join_balance({gid1: ["x", "y", "z"]})
    cfg.check_config([gid1])

    cfg.join_balance({gid2: ["a", "b", "c"]})
    cfg.check_config([gid1, gid2])

    assert cfg.groups[gid1] == ["x", "y", "z"]
    assert cfg.groups[gid2] == ["a", "b", "c"]

    cfg.leave_balance([gid1])
    cfg.check_config([gid2])

    cfg.leave_balance([gid2])
    cfg.check_config([])


def test_num_increments_on_join_and_leave():
    cfg = ShardConfig()
    cfg.join_balance({GID1: ["s1"]})
    assert cfg.num == 1
    cfg.leave_balance([GID1])
    assert cfg.num == 2


def test_single_group_owns_all_shards():
    cfg = ShardConfig()
    cfg.join_balance({GID1: ["s1"]})
    assert cfg.shards == [GID1] * N_SHARDS
    assert cfg.is_member(GID1)


def test_leave_all_unassigns_shards():
    cfg = ShardConfig()
    cfg.join_balance({GID1: ["s1"]})
    cfg.leave_balance([GID1])
    assert cfg.shards == [0] * N_SHARDS
    assert not cfg.is_member(GID1)


def test_many_groups_stay_balanced():
    cfg = ShardConfig()
    for gid in range(1, 8):
        cfg.join_balance({gid: [f"srv-{gid}"]})
        cfg.check_config(list(range(1, gid + 1)))
        assert_balanced(cfg, list(range(1, gid + 1)))
    assert cfg.num == 7
    for gid in range(1, 7):
        cfg.leave_balance([gid])
        cfg.check_config(list(range(gid + 1, 8)))
        assert_balanced(cfg, list(range(gid + 1, 8)))
        assert not cfg.is_member(gid)
    assert cfg.num == 13
    assert cfg.shards == [7] * N_SHARDS


def test_rejoin_raises():
    cfg = ShardConfig()
    cfg.join({GID1: ["s1"]})
    with pytest.raises(ShardConfigError):
        cfg.join({GID1: ["s2"]})


def test_join_with_shared_server_raises():
    cfg = ShardConfig()
    cfg.join({1: ["s1"]})
    with pytest.raises(ShardConfigError):
        cfg.join({2: ["s1"]})


def test_empty_join_raises():
    with pytest.raises(ShardConfigError):
        ShardConfig().join({})


def test_leave_unknown_raises():
    cfg = ShardConfig()
    cfg.join({1: ["s1"]})
    with pytest.raises(ShardConfigError):
        cfg.leave([2])


def test_empty_leave_raises():
    with pytest.raises(ShardConfigError):
        ShardConfig().leave([])


def test_check_config_detects_missing_group():
    cfg = ShardConfig()
    cfg.join_balance({1: ["s1"]})
    with pytest.raises(ShardConfigError):
        cfg.check_config([2])
    with pytest.raises(ShardConfigError):
        cfg.check_config([1, 2])


def test_check_config_detects_imbalance():
    cfg = ShardConfig()
    cfg.join({1: ["a"], 2: ["b"]})
    cfg.shards = [1] * N_SHARDS
    with pytest.raises(ShardConfigError):
        cfg.check_config([1, 2])


def test_check_config_detects_invalid_shard_owner():
    cfg = ShardConfig()
    cfg.join_balance({1: ["a"]})
    cfg.shards[0] = 9
    with pytest.raises(ShardConfigError):
        cfg.check_config([1])


def test_gid_servers():
    cfg = ShardConfig()
    cfg.join_balance({GID1: ["x", "y"]})
    assert cfg.gid_servers(0) == (GID1, ["x", "y"], True)
    empty = ShardConfig()
    assert empty.gid_servers(3) == (0, None, False)


def test_json_round_trip():
    cfg = ShardConfig()
    cfg.join_balance({1: ["x", "y", "z"]})
    cfg.join_balance({2: ["a", "b", "c"]})
    check_same_config(from_string(cfg.to_json()), cfg)
    check_same_config(from_string(str(cfg)), cfg)


def test_json_of_empty_config():
    assert ShardConfig().to_json() == '{"Num":0,"Shards":[0,0,0,0,0,0,0,0,0,0,0,0],"Groups":{}}'


def test_from_string_invalid_raises():
    with pytest.raises(ShardConfigError):
        from_string("not json")


def test_copy_is_deep():
    cfg = ShardConfig()
    cfg.join_balance({1: ["x"]})
    cp = cfg.copy()
    check_same_config(cp, cfg)
    cp.groups[1].append("y")
    cp.shards[0] = 5
    assert cfg.groups[1] == ["x"]
    assert cfg.shards[0] == 1


def test_key_to_shard_empty_key():
    # FNV-1a offset basis 2166136261 mod 12
    assert key_to_shard("") == 1


@pytest.mark.parametrize("key", ["a", "key", "hello world", "k17", "\u00e9"])
def test_key_to_shard_in_range_and_stable(key):
    shard = key_to_shard(key)
    assert 0 <= shard < N_SHARDS
    assert key_to_shard(key) == shard