"""
CLI integration tests using Click's test runner.

Commands run end-to-end against the in-memory node: ``open_rpc`` is
patched to hand out a client wired to it, so nothing touches a real
network.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from fakenode import ALICE_KEY, ONE, RPC_URL, TOKEN_ADDRESS, FakeNode

from obolus import __version__
from obolus.chain.abi import ERC20_ABI
from obolus.chain.rpc import RpcClient
from obolus.cli import cli
from obolus.wallet.eth import get_address, load_private_key


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def chain(node: FakeNode, monkeypatch: pytest.MonkeyPatch) -> FakeNode:
    """Route every command's RPC client to the in-memory node."""
    monkeypatch.setattr(
        "obolus.commands.common.open_rpc",
        lambda settings: RpcClient(RPC_URL, timeout=settings.rpc_timeout, client=node.client()),
    )
    monkeypatch.setenv("OBOLUS_CHAIN_ID", "31337")
    return node


@pytest.fixture()
def funded(chain: FakeNode, monkeypatch: pytest.MonkeyPatch) -> FakeNode:
    monkeypatch.setenv("PRIVATE_KEY", ALICE_KEY)
    monkeypatch.setenv("OBOLUS_TOKEN_ADDRESS", TOKEN_ADDRESS)
    return chain


class TestVersionAndInfo:
    """Test basic CLI commands that don't require a wallet."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_banner(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, [])
        assert result.exit_code == 0
        assert "O B O L U S" in result.output
        assert "transfer" in result.output

    def test_info(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch, alice: str) -> None:
        monkeypatch.setenv("PRIVATE_KEY", ALICE_KEY)
        monkeypatch.setenv("OBOLUS_RPC_URL", "http://127.0.0.1:8545")
        result = runner.invoke(cli, ["info"])
        assert result.exit_code == 0
        assert alice in result.output
        assert "http://127.0.0.1:8545" in result.output

    def test_info_with_bad_config(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OBOLUS_CHAIN_ID", "sepolia")
        result = runner.invoke(cli, ["info"])
        assert result.exit_code == 8
        assert "OBOLUS_CHAIN_ID" in result.output

    def test_log_level(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--log-level", "debug", "--version"])
        assert result.exit_code == 0


class TestWallet:
    def test_whoami_with_wallet(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch, alice: str) -> None:
        monkeypatch.setenv("PRIVATE_KEY", ALICE_KEY)
        result = runner.invoke(cli, ["whoami"])
        assert result.exit_code == 0
        assert f"Address: {alice}" in result.output

    def test_whoami_without_wallet(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["whoami"])
        assert result.exit_code != 0
        assert "No wallet found" in result.output

    def test_wallet_new(self, runner: CliRunner, tmp_path: Path) -> None:
        env_file = tmp_path / "wallet.env"
        result = runner.invoke(cli, ["wallet", "new", "--env-file", str(env_file)])
        assert result.exit_code == 0
        assert "Wallet created" in result.output
        address = get_address(load_private_key(env_file))
        assert address in result.output

    def test_wallet_new_refuses_to_overwrite(self, runner: CliRunner, tmp_path: Path) -> None:
        env_file = tmp_path / "wallet.env"
        assert runner.invoke(cli, ["wallet", "new", "--env-file", str(env_file)]).exit_code == 0
        before = env_file.read_text(encoding="utf-8")

        result = runner.invoke(cli, ["wallet", "new", "--env-file", str(env_file)])
        assert result.exit_code == 1
        assert "already exists" in result.output
        assert env_file.read_text(encoding="utf-8") == before

    def test_wallet_show(self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch, alice: str) -> None:
        monkeypatch.setenv("PRIVATE_KEY", ALICE_KEY)
        result = runner.invoke(cli, ["wallet", "show"])
        assert result.exit_code == 0
        assert alice in result.output


class TestBalance:
    def test_wallet_balance(self, runner: CliRunner, funded: FakeNode, alice: str) -> None:
        result = runner.invoke(cli, ["balance"])
        assert result.exit_code == 0, result.output
        assert "=== OBL Balance ===" in result.output
        assert alice in result.output
        assert "1,000,000 OBL" in result.output

    def test_account_balance_needs_no_wallet(self, runner: CliRunner, chain: FakeNode, bob: str) -> None:
        chain.token(TOKEN_ADDRESS).balances[bob.lower()] = 15 * ONE // 10
        result = runner.invoke(cli, ["balance", "--token", TOKEN_ADDRESS, "--account", bob])
        assert result.exit_code == 0, result.output
        assert "1.5 OBL" in result.output

    def test_missing_token(self, runner: CliRunner, chain: FakeNode) -> None:
        result = runner.invoke(cli, ["balance"])
        assert result.exit_code == 1
        assert "Token address not specified" in result.output

    def test_no_wallet(self, runner: CliRunner, chain: FakeNode) -> None:
        result = runner.invoke(cli, ["balance", "--token", TOKEN_ADDRESS])
        assert result.exit_code == 3
        assert "PRIVATE_KEY" in result.output


class TestTransfer:
    def test_transfer(self, runner: CliRunner, funded: FakeNode, bob: str) -> None:
        result = runner.invoke(cli, ["transfer", "--to", bob, "--amount", "1", "--yes"])
        assert result.exit_code == 0, result.output
        assert "Transfer submitted." in result.output
        assert funded.sent[0]["hash"] in result.output
        assert funded.token(TOKEN_ADDRESS).balance_of(bob) == ONE

    def test_transfer_and_wait(self, runner: CliRunner, funded: FakeNode, bob: str) -> None:
        result = runner.invoke(cli, ["transfer", "--to", bob, "--amount", "1", "--wait", "--yes"])
        assert result.exit_code == 0, result.output
        assert "Transfer confirmed!" in result.output
        assert "999,999 OBL" in result.output

    def test_raw_amount(self, runner: CliRunner, funded: FakeNode, bob: str) -> None:
        result = runner.invoke(cli, ["transfer", "--to", bob, "--amount", "42", "--raw", "--yes"])
        assert result.exit_code == 0, result.output
        assert funded.token(TOKEN_ADDRESS).balance_of(bob) == 42

    def test_confirmation_prompt(self, runner: CliRunner, funded: FakeNode, bob: str) -> None:
        result = runner.invoke(cli, ["transfer", "--to", bob, "--amount", "1"], input="y\n")
        assert result.exit_code == 0, result.output
        assert "Allow Obolus to use wallet" in result.output

    def test_user_declines(self, runner: CliRunner, funded: FakeNode, bob: str) -> None:
        result = runner.invoke(cli, ["transfer", "--to", bob, "--amount", "1"], input="n\n")
        assert result.exit_code == 2
        assert funded.count("eth_sendRawTransaction") == 0

    def test_insufficient_balance(self, runner: CliRunner, funded: FakeNode, bob: str) -> None:
        result = runner.invoke(cli, ["transfer", "--to", bob, "--amount", "2000000", "--yes"])
        assert result.exit_code == 7
        assert "Warning: balance is" in result.output
        assert "exceeds balance" in result.output
        assert funded.count("eth_sendRawTransaction") == 0

    def test_bad_recipient(self, runner: CliRunner, funded: FakeNode) -> None:
        result = runner.invoke(cli, ["transfer", "--to", "0x1234", "--amount", "1", "--yes"])
        assert result.exit_code == 8
        assert "Invalid address" in result.output

    def test_too_many_decimals(self, runner: CliRunner, funded: FakeNode, bob: str) -> None:
        result = runner.invoke(cli, ["transfer", "--to", bob, "--amount", "0.0000000000000000001", "--yes"])
        assert result.exit_code == 8


class TestChainCommands:
    def test_block(self, runner: CliRunner, chain: FakeNode) -> None:
        result = runner.invoke(cli, ["block"])
        assert result.exit_code == 0, result.output
        assert chain.block_hash in result.output

    def test_block_unreachable(self, runner: CliRunner, chain: FakeNode) -> None:
        chain.errors["eth_getBlockByNumber"] = 503
        result = runner.invoke(cli, ["block"])
        assert result.exit_code == 6

    def test_interface(self, runner: CliRunner, chain: FakeNode) -> None:
        result = runner.invoke(cli, ["interface", TOKEN_ADDRESS])
        assert result.exit_code == 0, result.output
        assert "balanceOf(address) -> (uint256)" in result.output
        assert "transfer(address,uint256)" in result.output
        assert "Transfer" in result.output

    def test_interface_nothing_deployed(self, runner: CliRunner, chain: FakeNode) -> None:
        result = runner.invoke(cli, ["interface", "0x" + "cd" * 20])
        assert result.exit_code == 4


class TestDeploy:
    def _artifacts(self, root: Path) -> Path:
        out_dir = root / "out"
        target = out_dir / "ObolusToken.sol"
        target.mkdir(parents=True)
        abi = ERC20_ABI + [
            {
                "type": "constructor",
                "inputs": [
                    {"name": "initialSupply", "type": "uint256"},
                    {"name": "recipient", "type": "address"},
                ],
                "stateMutability": "nonpayable",
            }
        ]
        artifact = {"abi": abi, "bytecode": {"object": "0x6080604052"}}
        (target / "ObolusToken.json").write_text(json.dumps(artifact), encoding="utf-8")
        return out_dir

    def test_deploy(self, runner: CliRunner, funded: FakeNode, tmp_path: Path, bob: str) -> None:
        out_dir = self._artifacts(tmp_path)
        result = runner.invoke(
            cli,
            ["deploy", "--supply", "1000000", "--recipient", bob, "--artifacts", str(out_dir), "--yes"],
        )
        assert result.exit_code == 0, result.output
        assert "Deployed!" in result.output

        deployed = [addr for addr in funded.tokens if addr != TOKEN_ADDRESS.lower()]
        assert len(deployed) == 1
        assert funded.tokens[deployed[0]].balance_of(bob) == 1_000_000 * ONE

    def test_deploy_without_artifact(self, runner: CliRunner, funded: FakeNode, tmp_path: Path) -> None:
        result = runner.invoke(
            cli, ["deploy", "--supply", "1", "--artifacts", str(tmp_path / "empty"), "--yes"]
        )
        assert result.exit_code == 1
        assert "forge build" in result.output
