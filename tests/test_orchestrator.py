"""Tests for the batch funding orchestrator."""

import json
from pathlib import Path

import pytest

from adapters.ledger import FeeData
from funding.config import TransferConfig
from funding.confirmation import ConfirmationPoller
from funding.errors import ConfigurationError, InsufficientFunds, LedgerUnavailable, SubmissionError
from funding.models import AccountRecord, Domain, InclusionReceipt, OutcomeStatus
from funding.orchestrator import BatchOrchestrator, default_skip
from funding.tx_engine.cancellation import CancellationToken
from funding.tx_engine.nonce_manager import NonceManager
from funding.tx_engine.submitter import TransferSubmitter

ETH = 10**18
FUNDER = "0x3f1Eae7D46d88F08fc2F8ed27FCb2AB183EB2d0E"
DEV = [
    "0x2093882c87B768469fbD434973bc7a4d20f73a51",
    "0x6D819ceDC7B20b8F755Ec841CBd5934812Cbe13b",
    "0xCE46e65a7A7527499e92337E5FBf958eABf314fa",
    "0xdafa61604B4Aa82092E1407F8027c71026982E6f",
    "0x1663f734483ceCB07AD6BC80919eA9a5cdDb7FE9",
]


class DummyLedger:
    """Single-domain ledger that credits recipients on inclusion."""

    def __init__(self, funder_balance=1000 * ETH, *, credit=True, reject=()):
        self.address = FUNDER
        self.chain_id = 412346
        self.balances = {FUNDER.lower(): funder_balance}
        self.credit = credit
        self.reject = {r.lower() for r in reject}
        self.sent = []

    def get_balance(self, address):
        return self.balances.get(address.lower(), 0)

    def get_nonce(self, address):
        return 0

    def estimate_gas(self, tx):
        return 21000

    def get_fee_data(self):
        return FeeData(gas_price=1)

    def send_transaction(self, to, value, data=None, gas_limit=None, *, nonce=None):
        if to.lower() in self.reject:
            raise ValueError("nonce too low")
        self.sent.append((to, value, nonce))
        return f"0x{len(self.sent):064x}"

    def wait_for_receipt(self, tx_hash, timeout):
        to, value, _ = self.sent[-1]
        if self.credit:
            self.balances[FUNDER.lower()] -= value
            self.balances[to.lower()] = self.balances.get(to.lower(), 0) + value
        return InclusionReceipt(tx_hash=tx_hash, block_number=len(self.sent))


class CountingSubmitter(TransferSubmitter):
    def __init__(self, *a, on_submit=None, **kw):
        super().__init__(*a, **kw)
        self.calls = []
        self.on_submit = on_submit

    def submit(self, request, amount):
        self.calls.append(request.recipient_address)
        receipt = super().submit(request, amount)
        if self.on_submit:
            self.on_submit(len(self.calls))
        return receipt


def _accounts(amount=ETH):
    records = [AccountRecord("funnel", FUNDER, amount)]
    records += [AccountRecord(f"dev{i + 1}", addr, amount) for i, addr in enumerate(DEV[:4])]
    return records


def _orchestrator(ledger, *, config=None, token=None, on_submit=None):
    config = config or TransferConfig(poll_interval=0.5, max_wait=2.0)
    clock = {"now": 0.0}

    def sleep(s):
        clock["now"] += s

    domain = Domain("L2", ledger.chain_id, ledger)
    submitter = CountingSubmitter(NonceManager(ledger), config, sleep=sleep, on_submit=on_submit)
    poller = ConfirmationPoller(config, clock=lambda: clock["now"], sleep=sleep)
    return BatchOrchestrator(domain, domain, submitter, poller, config, cancel_token=token)


def test_batch_skips_funnel_and_funds_rest() -> None:
    ledger = DummyLedger()
    orch = _orchestrator(ledger)
    result = orch.run(_accounts())
    assert (result.succeeded, result.skipped, result.failed) == (4, 1, 0)
    assert [o.status for _, o in result.outcomes] == [OutcomeStatus.SKIPPED] + [OutcomeStatus.SUCCEEDED] * 4
    assert all(o.confirmed_delta == ETH for _, o in result.outcomes[1:])
    assert FUNDER not in orch.submitter.calls
    assert [n for _, _, n in ledger.sent] == [0, 1, 2, 3]


def test_outcomes_follow_input_order() -> None:
    ledger = DummyLedger()
    accounts = _accounts()
    result = _orchestrator(ledger).run(accounts)
    assert [a for a, _ in result.outcomes] == accounts
    assert result.succeeded + result.skipped + result.failed == len(accounts)


def test_skip_by_address_even_with_other_name() -> None:
    ledger = DummyLedger()
    accounts = [AccountRecord("Funnel Account", FUNDER, ETH), AccountRecord("dev1", DEV[0], ETH)]
    orch = _orchestrator(ledger)
    result = orch.run(accounts)
    assert result.skipped == 1
    assert orch.submitter.calls == [DEV[0]]


def test_insufficient_funds_isolated() -> None:
    ledger = DummyLedger(funder_balance=0)
    result = _orchestrator(ledger).run(_accounts())
    assert (result.succeeded, result.skipped, result.failed) == (0, 1, 4)
    outcome = result.outcomes[1][1]
    assert outcome.status is OutcomeStatus.FAILED
    assert outcome.error_kind == InsufficientFunds.__name__
    assert ledger.sent == []


def test_fallback_amount_when_short() -> None:
    ledger = DummyLedger(funder_balance=ETH // 2)
    accounts = [AccountRecord("dev1", DEV[0], 10_000 * ETH)]
    result = _orchestrator(ledger).run(accounts)
    outcome = result.outcomes[0][1]
    assert outcome.status is OutcomeStatus.SUCCEEDED
    assert outcome.amount == ETH // 2 - 10**16


def test_submission_error_isolated() -> None:
    ledger = DummyLedger(reject=[DEV[1]])
    result = _orchestrator(ledger).run(_accounts())
    assert (result.succeeded, result.skipped, result.failed) == (3, 1, 1)
    failed = result.outcomes[2][1]
    assert failed.status is OutcomeStatus.FAILED
    assert failed.error_kind == SubmissionError.__name__
    assert result.outcomes[3][1].status is OutcomeStatus.SUCCEEDED


def test_timeout_is_soft() -> None:
    ledger = DummyLedger(credit=False)
    config = TransferConfig(poll_interval=2.0, max_wait=120.0)
    result = _orchestrator(ledger, config=config).run(_accounts())
    assert (result.succeeded, result.skipped, result.failed) == (4, 1, 0)
    assert result.timed_out == 4
    outcome = result.outcomes[1][1]
    assert outcome.status is OutcomeStatus.TIMED_OUT
    assert outcome.tx_hash is not None
    assert outcome.error_kind == "ConfirmationTimeout"


def test_non_connectivity_error_recorded_and_batch_continues() -> None:
    ledger = DummyLedger()
    orch = _orchestrator(ledger)
    original = ledger.get_balance

    def flaky(address):
        if address.lower() == DEV[0].lower():
            raise RuntimeError("boom")
        return original(address)

    ledger.get_balance = flaky
    result = orch.run(_accounts())
    assert result.outcomes[1][1].error_kind == "RuntimeError"
    assert result.succeeded == 3
    errors = [json.loads(l) for l in Path("logs/errors.log").read_text().splitlines()]
    assert [(e["module"], e["event"], e["error"]) for e in errors] == [("orchestrator", "failed", "boom")]


def test_unreachable_ledger_aborts_batch() -> None:
    ledger = DummyLedger()
    orch = _orchestrator(ledger)
    original = ledger.get_balance

    def dead_after_first(address):
        if address.lower() == DEV[1].lower():
            raise LedgerUnavailable("L2 balance read failed: connection refused")
        return original(address)

    ledger.get_balance = dead_after_first
    with pytest.raises(LedgerUnavailable):
        orch.run(_accounts())
    # dev1 funded, dev2 aborted the run, dev3 and dev4 never attempted
    assert [to for to, _, _ in ledger.sent] == [DEV[0]]
    entries = [json.loads(l) for l in Path("logs/orchestrator.json").read_text().splitlines()]
    assert [e["event"] for e in entries] == ["batch_start", "skipped", "succeeded", "batch_aborted"]
    assert entries[-1]["error_kind"] == "LedgerUnavailable"
    assert (entries[-1]["succeeded"], entries[-1]["skipped"], entries[-1]["failed"]) == (1, 1, 0)


def test_missing_credential_aborts_batch() -> None:
    ledger = DummyLedger()
    ledger.address = None
    ledger.get_balance = lambda address: 1000 * ETH
    accounts = [AccountRecord("dev1", DEV[0], ETH), AccountRecord("dev2", DEV[1], ETH)]
    with pytest.raises(ConfigurationError):
        _orchestrator(ledger).run(accounts)
    assert ledger.sent == []


def test_cancel_after_two_accounts() -> None:
    ledger = DummyLedger()
    token = CancellationToken()
    accounts = [AccountRecord(f"dev{i + 1}", addr, ETH) for i, addr in enumerate(DEV)]

    def stop_after_second(count):
        if count == 2:
            token.cancel("operator")

    orch = _orchestrator(ledger, token=token, on_submit=stop_after_second)
    result = orch.run(accounts)
    assert result.cancelled is True
    assert len(result.outcomes) == 2
    assert [a for a, _ in result.outcomes] == accounts[:2]
    assert all(o.status is OutcomeStatus.SUCCEEDED for _, o in result.outcomes)
    assert len(ledger.sent) == 2
    assert result.succeeded + result.skipped + result.failed == len(result.outcomes)


def test_cancelled_before_start() -> None:
    ledger = DummyLedger()
    token = CancellationToken()
    token.cancel()
    result = _orchestrator(ledger, token=token).run(_accounts())
    assert result.outcomes == []
    assert result.cancelled


def test_stop_flag_file(tmp_path: Path) -> None:
    ledger = DummyLedger()
    flag = tmp_path / "stop"
    token = CancellationToken(flag_file=flag)

    def create_flag(count):
        flag.write_text("1")

    result = _orchestrator(ledger, token=token, on_submit=create_flag).run(_accounts())
    # funnel skipped, dev1 funded, then the flag stops the batch
    assert len(result.outcomes) == 2
    assert result.cancelled


@pytest.mark.parametrize(
    "name,address,expected",
    [("funnel", DEV[0], True), ("FUNNEL", DEV[0], True), ("dev1", FUNDER.lower(), True), ("dev1", DEV[0], False)],
)
def test_default_skip(name: str, address: str, expected: bool) -> None:
    skip = default_skip(("funnel",), FUNDER)
    assert skip(AccountRecord(name, address, 1)) is expected


def test_batch_log_summary() -> None:
    ledger = DummyLedger()
    _orchestrator(ledger).run(_accounts())
    entries = [json.loads(l) for l in Path("logs/orchestrator.json").read_text().splitlines()]
    assert entries[0]["event"] == "batch_start"
    assert entries[-1]["event"] == "batch_complete"
    assert entries[-1]["succeeded"] == 4
    assert entries[-1]["skipped"] == 1
    assert [e["event"] for e in entries[1:-1]] == ["skipped"] + ["succeeded"] * 4
