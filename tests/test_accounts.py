"""Deterministic test identities."""

from __future__ import annotations

from coincurve import PrivateKey

from pointlock.test_accounts import (
    ALICE,
    BOB,
    BY_NAME,
    MINER,
    NAMES,
    SEED_MAP,
    address,
    private_key,
)


def test_accounts_deterministic() -> None:
    assert address(2) == ALICE
    assert address(3) == BOB
    assert BY_NAME["miner"] == MINER
    assert len(SEED_MAP) == len(NAMES) == 10

    for seed in range(1, 11):
        addr = address(seed)
        assert len(addr) == 32
        assert private_key(seed)[0] == seed
        assert private_key(seed)[1:] == bytes(31)
        assert SEED_MAP[addr] == seed


def test_accounts_are_x_only_public_keys() -> None:
    pk = PrivateKey(private_key(2)).public_key.format(compressed=False)
    assert ALICE == pk[1:33]


def test_accounts_distinct() -> None:
    assert len({address(seed) for seed in range(1, 11)}) == 10
