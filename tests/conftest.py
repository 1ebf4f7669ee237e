"""Shared fixtures: an in-memory node, funded keys and a controller wired to both."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from eth_account import Account

from fakenode import ALICE_KEY, BOB_KEY, ONE, RPC_URL, TOKEN_ADDRESS, FakeNode, FakeToken, make_wallet

from obolus.chain.rpc import RpcClient
from obolus.controller import InteractionController
from obolus.wallet.session import WalletSession


@pytest.fixture(autouse=True)
def isolated_env(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep tests away from the real ~/.obolus and from each other's variables."""
    home = tmp_path_factory.mktemp("obolus-home")
    for name in [n for n in os.environ if n.startswith("OBOLUS_")] + ["PRIVATE_KEY"]:
        # set first so the removal is undone even for variables dotenv adds later
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setattr("obolus.config.OBOLUS_ENV", home / ".env")
    monkeypatch.setattr("obolus.wallet.eth.OBOLUS_ENV", home / ".env")
    return home


@pytest.fixture()
def node() -> FakeNode:
    node = FakeNode()
    token = node.add_token(TOKEN_ADDRESS, FakeToken())
    token.balances[Account.from_key(ALICE_KEY).address.lower()] = 1_000_000 * ONE
    return node


@pytest.fixture()
def rpc(node: FakeNode) -> RpcClient:
    return RpcClient(RPC_URL, timeout=5.0, client=node.client())


@pytest.fixture()
def alice() -> str:
    return Account.from_key(ALICE_KEY).address


@pytest.fixture()
def bob() -> str:
    return Account.from_key(BOB_KEY).address


@pytest.fixture()
def wallet() -> WalletSession:
    return make_wallet()


@pytest.fixture()
def controller(wallet: WalletSession, rpc: RpcClient) -> InteractionController:
    return InteractionController(wallet, rpc, TOKEN_ADDRESS, poll_interval=0.01)
